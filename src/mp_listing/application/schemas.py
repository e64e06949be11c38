# src/mp_listing/application/schemas.py
from datetime import datetime

from pydantic import BaseModel

from src.mp_common.cents import cents_to_display
from src.mp_listing.domain.models import Listing


class ListingResponse(BaseModel):
    id: str
    seller_id: str
    title: str
    asking_price_cents: int
    asking_price_display: str
    shipping_cost_cents: int | None
    shipping_cost_display: str | None
    minimum_offer_cents: int
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, listing: Listing) -> "ListingResponse":
        shipping = listing.shipping_cost
        return cls(
            id=listing.id,
            seller_id=listing.seller_id,
            title=listing.title,
            asking_price_cents=listing.asking_price,
            asking_price_display=cents_to_display(listing.asking_price),
            shipping_cost_cents=shipping,
            shipping_cost_display=cents_to_display(shipping) if shipping is not None else None,
            minimum_offer_cents=listing.minimum_offer,
            status=listing.status,
            created_at=listing.created_at,
            updated_at=listing.updated_at,
        )
