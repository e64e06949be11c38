"""Listing domain model - pure dataclass, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime

from src.mp_common.enums import ListingStatus


@dataclass
class Listing:
    id: str
    seller_id: str
    title: str
    asking_price: int  # cents
    shipping_cost: int | None  # cents, None = not specified
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_available(self) -> bool:
        return self.status == ListingStatus.ACTIVE

    @property
    def minimum_offer(self) -> int:
        """Smallest acceptable offer: half the asking price, rounded up."""
        return (self.asking_price + 1) // 2
