# src/mp_offer/application/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field

from src.mp_common.cents import cents_to_display
from src.mp_common.response import PaginationMeta
from src.mp_fees.domain.models import MarketplaceFees
from src.mp_offer.domain.models import Offer
from src.mp_transaction.application.schemas import TransactionResponse


class CreateOfferRequest(BaseModel):
    listing_id: str
    amount_cents: int
    message: str | None = Field(None, max_length=1000)


class CounterOfferRequest(BaseModel):
    counter_amount_cents: int
    message: str | None = Field(None, max_length=1000)


class OfferFeePreview(BaseModel):
    """What the seller would net if this offer were accepted now."""

    platform_fee_cents: int
    platform_fee_display: str
    seller_receives_cents: int
    seller_receives_display: str
    fee_rate_bps: int

    @classmethod
    def from_domain(cls, fees: MarketplaceFees) -> "OfferFeePreview":
        return cls(
            platform_fee_cents=fees.platform_fee,
            platform_fee_display=cents_to_display(fees.platform_fee),
            seller_receives_cents=fees.seller_receives,
            seller_receives_display=cents_to_display(fees.seller_receives),
            fee_rate_bps=fees.fee_rate_bps,
        )


class OfferResponse(BaseModel):
    id: str
    listing_id: str
    buyer_id: str
    amount_cents: int
    amount_display: str
    message: str | None
    status: str
    parent_offer_id: str | None
    created_at: datetime | None
    expires_at: datetime
    responded_at: datetime | None
    fee_preview: OfferFeePreview | None = None

    @classmethod
    def from_domain(
        cls, offer: Offer, now: datetime, fees: MarketplaceFees | None = None
    ) -> "OfferResponse":
        return cls(
            id=offer.id,
            listing_id=offer.listing_id,
            buyer_id=offer.buyer_id,
            amount_cents=offer.amount,
            amount_display=cents_to_display(offer.amount),
            message=offer.message,
            status=offer.effective_status(now),
            parent_offer_id=offer.parent_offer_id,
            created_at=offer.created_at,
            expires_at=offer.expires_at,
            responded_at=offer.responded_at,
            fee_preview=OfferFeePreview.from_domain(fees) if fees is not None else None,
        )


class AcceptOfferResponse(BaseModel):
    offer: OfferResponse
    transaction: TransactionResponse


class OfferListResponse(BaseModel):
    items: list[OfferResponse]


class OfferPageResponse(BaseModel):
    items: list[OfferResponse]
    pagination: PaginationMeta
