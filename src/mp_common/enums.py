"""Global enums - must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class ListingStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    SOLD = "SOLD"
    REMOVED = "REMOVED"


class OfferStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class TransactionType(str, Enum):
    """Sale origin: negotiated offer, or bought outright at asking price."""
    OFFER = "OFFER"
    MARKETPLACE = "MARKETPLACE"


class TransactionStatus(str, Enum):
    PAYMENT_PENDING = "PAYMENT_PENDING"
    SHIPPED = "SHIPPED"
    DISPUTED = "DISPUTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    HELD_ESCROW = "HELD_ESCROW"


class DeliveryStatus(str, Enum):
    NOT_SHIPPED = "NOT_SHIPPED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"


class PaymentMethod(str, Enum):
    EFT = "EFT"
    CARD = "CARD"


class LedgerEntryType(str, Enum):
    # Fee capture (platform revenue)
    PLATFORM_FEE = "PLATFORM_FEE"
    # Buyer funds received into escrow
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    # Card surcharge absorbed by the platform (negative revenue)
    CARD_FEE = "CARD_FEE"
    # Seller payout after escrow release
    SELLER_PAYOUT = "SELLER_PAYOUT"
    # Buyer refund after a cancelled dispute
    REFUND = "REFUND"


class LedgerEntryStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class NotificationEvent(str, Enum):
    OFFER_RECEIVED = "OFFER_RECEIVED"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"
    OFFER_REJECTED = "OFFER_REJECTED"
    OFFER_COUNTERED = "OFFER_COUNTERED"
    ITEM_SOLD = "ITEM_SOLD"
    PAYMENT_VERIFIED = "PAYMENT_VERIFIED"
    ITEM_SHIPPED = "ITEM_SHIPPED"
    ITEM_DELIVERED = "ITEM_DELIVERED"
    PAYMENT_RELEASED = "PAYMENT_RELEASED"
    DISPUTE_FILED = "DISPUTE_FILED"
    DISPUTE_RESOLVED = "DISPUTE_RESOLVED"
    TRANSACTION_CANCELLED = "TRANSACTION_CANCELLED"
    PAYOUT_SCHEDULED = "PAYOUT_SCHEDULED"
    TRANSACTION_CORRECTED = "TRANSACTION_CORRECTED"


class PartyRole(str, Enum):
    """Which side of a sale a user-scoped read is filtered on."""
    BUYER = "buyer"
    SELLER = "seller"
