"""Fee domain models - frozen dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

SETTINGS_ID = "settings"

DEFAULT_MARKETPLACE_FEE_BPS = 550  # 5.5%
DEFAULT_FREE_THRESHOLD_CENTS = 100_000  # R1,000.00
DEFAULT_INSTANT_OFFER_FEE_BPS = 500  # 5%
DEFAULT_ESCROW_RELEASE_DAYS = 2

CARD_SURCHARGE_BPS = 200  # 2%, absorbed by the platform


@dataclass(frozen=True)
class PlatformSettings:
    """Snapshot of the platform_settings singleton row.

    Read once inside the DB transaction that creates a sale. The version,
    marketplace rate and escrow delay are copied onto the transaction so
    later admin changes never alter historical amounts or payout timing.
    """

    marketplace_fee_bps: int = DEFAULT_MARKETPLACE_FEE_BPS
    free_threshold_cents: int = DEFAULT_FREE_THRESHOLD_CENTS
    instant_offer_fee_bps: int = DEFAULT_INSTANT_OFFER_FEE_BPS
    escrow_release_days: int = DEFAULT_ESCROW_RELEASE_DAYS
    version: int = 1
    updated_at: datetime | None = None


@dataclass(frozen=True)
class MarketplaceFees:
    item_price: int
    platform_fee: int
    seller_receives: int
    fee_rate_bps: int  # 0 when the item is under the free threshold


@dataclass(frozen=True)
class InstantOfferCosts:
    seller_receives: int
    platform_fee: int
    buyer_pays: int
