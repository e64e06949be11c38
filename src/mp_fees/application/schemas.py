# src/mp_fees/application/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field

from src.mp_common.cents import cents_to_display
from src.mp_fees.domain.models import MarketplaceFees, PlatformSettings


class UpdateSettingsRequest(BaseModel):
    """Partial update; omitted fields keep their current value."""

    marketplace_fee_bps: int | None = Field(None, ge=0, le=10_000)
    free_threshold_cents: int | None = Field(None, ge=0)
    instant_offer_fee_bps: int | None = Field(None, ge=0, le=10_000)
    escrow_release_days: int | None = Field(None, ge=0, le=365)


class SettingsResponse(BaseModel):
    marketplace_fee_bps: int
    free_threshold_cents: int
    free_threshold_display: str
    instant_offer_fee_bps: int
    escrow_release_days: int
    version: int
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, s: PlatformSettings) -> "SettingsResponse":
        return cls(
            marketplace_fee_bps=s.marketplace_fee_bps,
            free_threshold_cents=s.free_threshold_cents,
            free_threshold_display=cents_to_display(s.free_threshold_cents),
            instant_offer_fee_bps=s.instant_offer_fee_bps,
            escrow_release_days=s.escrow_release_days,
            version=s.version,
            updated_at=s.updated_at,
        )


class FeePreviewResponse(BaseModel):
    item_price_cents: int
    item_price_display: str
    platform_fee_cents: int
    platform_fee_display: str
    seller_receives_cents: int
    seller_receives_display: str
    fee_rate_bps: int
    settings_version: int

    @classmethod
    def from_domain(cls, fees: MarketplaceFees, settings_version: int) -> "FeePreviewResponse":
        return cls(
            item_price_cents=fees.item_price,
            item_price_display=cents_to_display(fees.item_price),
            platform_fee_cents=fees.platform_fee,
            platform_fee_display=cents_to_display(fees.platform_fee),
            seller_receives_cents=fees.seller_receives,
            seller_receives_display=cents_to_display(fees.seller_receives),
            fee_rate_bps=fees.fee_rate_bps,
            settings_version=settings_version,
        )
