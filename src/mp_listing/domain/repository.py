# src/mp_listing/domain/repository.py
"""ListingRepository Protocol - interface contract for persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_listing.domain.models import Listing


class ListingRepositoryProtocol(Protocol):
    async def get_by_id(self, db: AsyncSession, listing_id: str) -> Listing | None: ...

    async def get_for_share(self, db: AsyncSession, listing_id: str) -> Listing | None: ...

    async def mark_sold(self, db: AsyncSession, listing_id: str) -> Listing | None: ...

    async def mark_active(self, db: AsyncSession, listing_id: str) -> Listing | None: ...
