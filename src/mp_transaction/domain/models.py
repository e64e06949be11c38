"""Transaction domain model - pure dataclass, no SQLAlchemy dependency.

Money fields (item_price ... seller_payout) are computed once when the sale is
opened; only an administrative correction may later change the platform fee
(and with it the seller payout). The fee snapshot columns record which settings
version and rate produced them, and the escrow delay that will apply at payout.
"""

from dataclasses import dataclass
from datetime import datetime

from src.mp_common.enums import DeliveryStatus, PaymentStatus, TransactionStatus

CLEARED_PAYMENT_STATUSES = (PaymentStatus.VERIFIED.value, PaymentStatus.HELD_ESCROW.value)
TERMINAL_STATUSES = (TransactionStatus.COMPLETED.value, TransactionStatus.CANCELLED.value)


@dataclass
class Transaction:
    id: str
    transaction_type: str  # OFFER / MARKETPLACE
    listing_id: str
    seller_id: str
    buyer_id: str
    offer_id: str | None
    # Amounts (cents), fixed at creation except through admin correction
    item_price: int
    shipping_cost: int
    total_amount: int
    platform_fee: int
    seller_payout: int
    # Settings snapshot
    fee_rate_bps: int
    settings_version: int
    escrow_release_days: int
    # State
    status: str = TransactionStatus.PAYMENT_PENDING.value
    payment_status: str = PaymentStatus.PENDING.value
    delivery_status: str = DeliveryStatus.NOT_SHIPPED.value
    # Payment
    payment_method: str | None = None
    payment_ref: str | None = None
    card_fee: int = 0
    # Shipping
    tracking_number: str | None = None
    courier_name: str | None = None
    # Disputes / admin
    dispute_reason: str | None = None
    resolution_note: str | None = None
    # Timestamps
    created_at: datetime | None = None
    updated_at: datetime | None = None
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    completed_at: datetime | None = None
    disputed_at: datetime | None = None
    cancelled_at: datetime | None = None
    payout_release_at: datetime | None = None

    @property
    def payment_cleared(self) -> bool:
        return self.payment_status in CLEARED_PAYMENT_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.seller_id, self.buyer_id)


@dataclass(frozen=True)
class TransactionFilter:
    status: str | None = None
    payment_status: str | None = None
    transaction_type: str | None = None
    seller_id: str | None = None
    buyer_id: str | None = None
    participant_id: str | None = None  # seller OR buyer


@dataclass(frozen=True)
class TransactionCorrection:
    """Administrative correction; None fields are left unchanged."""

    note: str
    platform_fee: int | None = None
    tracking_number: str | None = None
    courier_name: str | None = None
    payment_ref: str | None = None

    @property
    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (self.platform_fee, self.tracking_number, self.courier_name, self.payment_ref)
        )

    def changes_fee(self, tx: Transaction) -> bool:
        return self.platform_fee is not None and self.platform_fee != tx.platform_fee

    def changes(self, tx: Transaction) -> bool:
        """False when every requested value is already on the row."""
        return any(
            new is not None and new != old
            for new, old in (
                (self.platform_fee, tx.platform_fee),
                (self.tracking_number, tx.tracking_number),
                (self.courier_name, tx.courier_name),
                (self.payment_ref, tx.payment_ref),
            )
        )


@dataclass
class UserStats:
    listings_total: int
    listings_active: int
    listings_sold: int
    offers_received: int
    offers_pending: int
    offers_made: int
    sales_completed: int
    sales_open: int
    earnings: int          # seller_payout over COMPLETED sales
    purchases_completed: int
    purchases_open: int
    spent: int             # total_amount over COMPLETED purchases
    total_sales: int       # user counters
    total_purchases: int
