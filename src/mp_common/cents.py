"""Integer arithmetic utilities for cents-based money.

All prices, fees and payouts use int (cents, ZAR minor unit). No float, no Decimal.
Rates are integer basis points (1 bps = 0.01%).
"""

BPS_DENOMINATOR = 10_000


def validate_amount(amount: int, *, name: str = "amount") -> None:
    """Validate that a money amount is a non-negative integer number of cents."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise TypeError(f"{name} must be an int number of cents, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError(f"{name} must be >= 0 cents, got {amount}")


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 150000 -> 'R1,500.00', -1200 -> '-R12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-R{abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"R{cents // 100:,}.{cents % 100:02d}"


def apply_rate_bps(amount: int, rate_bps: int) -> int:
    """Round-half-up share of a non-negative amount: (amount x rate_bps + 5000) // 10000.

    200000 cents at 550 bps -> 11000 cents exactly; 1 cent at 5000 bps -> 1 cent.
    """
    validate_amount(amount)
    if rate_bps < 0:
        raise ValueError(f"rate_bps must be >= 0, got {rate_bps}")
    if amount == 0 or rate_bps == 0:
        return 0
    return (amount * rate_bps + BPS_DENOMINATOR // 2) // BPS_DENOMINATOR
