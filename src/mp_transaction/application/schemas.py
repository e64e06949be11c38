# src/mp_transaction/application/schemas.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from src.mp_common.cents import cents_to_display
from src.mp_common.enums import PaymentMethod
from src.mp_common.response import PaginationMeta
from src.mp_transaction.domain.models import Transaction, UserStats


class BuyNowRequest(BaseModel):
    listing_id: str


class RecordPaymentRequest(BaseModel):
    payment_method: PaymentMethod
    payment_ref: str | None = Field(None, max_length=128)
    hold_in_escrow: bool = True


class ShipRequest(BaseModel):
    tracking_number: str = Field(..., max_length=128)
    courier_name: str | None = Field(None, max_length=128)

    @field_validator("tracking_number")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("tracking_number is required")
        return v


class DisputeRequest(BaseModel):
    reason: str = Field(..., max_length=2000)

    @field_validator("reason")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reason is required")
        return v


class ResolveDisputeRequest(BaseModel):
    outcome: Literal["COMPLETED", "CANCELLED"]
    note: str | None = Field(None, max_length=2000)


class CorrectTransactionRequest(BaseModel):
    """Admin correction. ``note`` is mandatory and kept on the transaction."""

    note: str = Field(..., max_length=2000)
    platform_fee_cents: int | None = Field(None, ge=0)
    tracking_number: str | None = Field(None, max_length=128)
    courier_name: str | None = Field(None, max_length=128)
    payment_ref: str | None = Field(None, max_length=128)

    @field_validator("note")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("note is required")
        return v


class TransactionResponse(BaseModel):
    id: str
    transaction_type: str
    listing_id: str
    seller_id: str
    buyer_id: str
    offer_id: str | None
    item_price_cents: int
    item_price_display: str
    shipping_cost_cents: int
    shipping_cost_display: str
    total_amount_cents: int
    total_amount_display: str
    platform_fee_cents: int
    platform_fee_display: str
    seller_payout_cents: int
    seller_payout_display: str
    fee_rate_bps: int
    settings_version: int
    escrow_release_days: int
    status: str
    payment_status: str
    delivery_status: str
    payment_method: str | None
    payment_ref: str | None
    card_fee_cents: int
    tracking_number: str | None
    courier_name: str | None
    dispute_reason: str | None
    resolution_note: str | None
    created_at: datetime | None
    paid_at: datetime | None
    shipped_at: datetime | None
    delivered_at: datetime | None
    completed_at: datetime | None
    disputed_at: datetime | None
    cancelled_at: datetime | None
    payout_release_at: datetime | None

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionResponse":
        return cls(
            id=tx.id,
            transaction_type=tx.transaction_type,
            listing_id=tx.listing_id,
            seller_id=tx.seller_id,
            buyer_id=tx.buyer_id,
            offer_id=tx.offer_id,
            item_price_cents=tx.item_price,
            item_price_display=cents_to_display(tx.item_price),
            shipping_cost_cents=tx.shipping_cost,
            shipping_cost_display=cents_to_display(tx.shipping_cost),
            total_amount_cents=tx.total_amount,
            total_amount_display=cents_to_display(tx.total_amount),
            platform_fee_cents=tx.platform_fee,
            platform_fee_display=cents_to_display(tx.platform_fee),
            seller_payout_cents=tx.seller_payout,
            seller_payout_display=cents_to_display(tx.seller_payout),
            fee_rate_bps=tx.fee_rate_bps,
            settings_version=tx.settings_version,
            escrow_release_days=tx.escrow_release_days,
            status=tx.status,
            payment_status=tx.payment_status,
            delivery_status=tx.delivery_status,
            payment_method=tx.payment_method,
            payment_ref=tx.payment_ref,
            card_fee_cents=tx.card_fee,
            tracking_number=tx.tracking_number,
            courier_name=tx.courier_name,
            dispute_reason=tx.dispute_reason,
            resolution_note=tx.resolution_note,
            created_at=tx.created_at,
            paid_at=tx.paid_at,
            shipped_at=tx.shipped_at,
            delivered_at=tx.delivered_at,
            completed_at=tx.completed_at,
            disputed_at=tx.disputed_at,
            cancelled_at=tx.cancelled_at,
            payout_release_at=tx.payout_release_at,
        )


class TransactionPageResponse(BaseModel):
    items: list[TransactionResponse]
    pagination: PaginationMeta


class UserStatsResponse(BaseModel):
    listings: dict[str, int]
    offers: dict[str, int]
    earnings_cents: int
    earnings_display: str
    sales_completed: int
    sales_open: int
    spent_cents: int
    spent_display: str
    purchases_completed: int
    purchases_open: int
    total_sales: int
    total_purchases: int

    @classmethod
    def from_domain(cls, s: UserStats) -> "UserStatsResponse":
        return cls(
            listings={
                "total": s.listings_total,
                "active": s.listings_active,
                "sold": s.listings_sold,
            },
            offers={
                "received": s.offers_received,
                "pending": s.offers_pending,
                "made": s.offers_made,
            },
            earnings_cents=s.earnings,
            earnings_display=cents_to_display(s.earnings),
            sales_completed=s.sales_completed,
            sales_open=s.sales_open,
            spent_cents=s.spent,
            spent_display=cents_to_display(s.spent),
            purchases_completed=s.purchases_completed,
            purchases_open=s.purchases_open,
            total_sales=s.total_sales,
            total_purchases=s.total_purchases,
        )
