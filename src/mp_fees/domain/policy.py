"""Fee Policy - pure functions over integer cents.

Marketplace sale:
    item_price <  free_threshold  → platform_fee = 0
    item_price >= free_threshold  → platform_fee = round_half_up(item_price x rate)
    seller_receives = item_price - platform_fee   (exact, no rounding leakage)

Instant offer (fee charged on top of the seller payout):
    buyer_pays = seller_receives + round_half_up(seller_receives x instant_rate)
"""

from src.mp_common.cents import apply_rate_bps, validate_amount
from src.mp_fees.domain.models import (
    CARD_SURCHARGE_BPS,
    InstantOfferCosts,
    MarketplaceFees,
    PlatformSettings,
)


def compute_marketplace_fees(item_price: int, settings: PlatformSettings) -> MarketplaceFees:
    validate_amount(item_price, name="item_price")
    if item_price < settings.free_threshold_cents:
        return MarketplaceFees(
            item_price=item_price,
            platform_fee=0,
            seller_receives=item_price,
            fee_rate_bps=0,
        )
    platform_fee = apply_rate_bps(item_price, settings.marketplace_fee_bps)
    return MarketplaceFees(
        item_price=item_price,
        platform_fee=platform_fee,
        seller_receives=item_price - platform_fee,
        fee_rate_bps=settings.marketplace_fee_bps,
    )


def compute_card_surcharge(amount: int) -> int:
    """Card processing fee the platform absorbs on a card payment."""
    return apply_rate_bps(amount, CARD_SURCHARGE_BPS)


def compute_instant_offer_costs(
    seller_receives: int, settings: PlatformSettings
) -> InstantOfferCosts:
    validate_amount(seller_receives, name="seller_receives")
    platform_fee = apply_rate_bps(seller_receives, settings.instant_offer_fee_bps)
    return InstantOfferCosts(
        seller_receives=seller_receives,
        platform_fee=platform_fee,
        buyer_pays=seller_receives + platform_fee,
    )
