"""Offer domain model - pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mp_common.enums import OfferStatus


@dataclass
class Offer:
    id: str
    listing_id: str
    buyer_id: str
    amount: int  # cents, > 0
    status: str
    expires_at: datetime
    message: str | None = None
    parent_offer_id: str | None = None  # set on counter-offers
    created_at: datetime | None = None
    responded_at: datetime | None = None
    updated_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.status == OfferStatus.PENDING and self.expires_at <= now

    def effective_status(self, now: datetime) -> str:
        """Status as observed at ``now``: a PENDING offer past its expiry reads as EXPIRED."""
        if self.is_expired(now):
            return OfferStatus.EXPIRED.value
        return self.status

    def is_open(self, now: datetime) -> bool:
        return self.effective_status(now) == OfferStatus.PENDING
