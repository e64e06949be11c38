# src/mp_listing/infrastructure/persistence.py
"""ListingRepository - raw SQL persistence implementation.

Listings are created and edited by the seller-facing listing service; this
context only reads them and flips status through the availability gate.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_listing.domain.models import Listing

_SELECT_COLUMNS = """
    id, seller_id, title, asking_price, shipping_cost, status, created_at, updated_at
"""

_GET_LISTING_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM listings WHERE id = :id
""")

# FOR SHARE blocks a concurrent ACTIVE -> SOLD claim until the caller commits.
_GET_LISTING_FOR_SHARE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM listings WHERE id = :id
    FOR SHARE
""")

_MARK_SOLD_SQL = text(f"""
    UPDATE listings
    SET status = 'SOLD', updated_at = NOW()
    WHERE id = :id AND status = 'ACTIVE'
    RETURNING {_SELECT_COLUMNS}
""")

_MARK_ACTIVE_SQL = text(f"""
    UPDATE listings
    SET status = 'ACTIVE', updated_at = NOW()
    WHERE id = :id AND status = 'SOLD'
    RETURNING {_SELECT_COLUMNS}
""")


def _row_to_listing(row: Any) -> Listing:
    return Listing(
        id=row.id,
        seller_id=row.seller_id,
        title=row.title,
        asking_price=row.asking_price,
        shipping_cost=row.shipping_cost,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ListingRepository:
    """Concrete implementation of ListingRepositoryProtocol using raw SQL."""

    async def get_by_id(self, db: AsyncSession, listing_id: str) -> Listing | None:
        row = (await db.execute(_GET_LISTING_SQL, {"id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None

    async def get_for_share(self, db: AsyncSession, listing_id: str) -> Listing | None:
        row = (await db.execute(_GET_LISTING_FOR_SHARE_SQL, {"id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None

    async def mark_sold(self, db: AsyncSession, listing_id: str) -> Listing | None:
        """ACTIVE -> SOLD. Returns None when the listing was not ACTIVE (or missing)."""
        row = (await db.execute(_MARK_SOLD_SQL, {"id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None

    async def mark_active(self, db: AsyncSession, listing_id: str) -> Listing | None:
        """SOLD -> ACTIVE. Returns None when the listing was not SOLD (or missing)."""
        row = (await db.execute(_MARK_ACTIVE_SQL, {"id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None
