# src/mp_offer/domain/repository.py
"""OfferRepository Protocol - interface contract for persistence layer."""
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_offer.domain.models import Offer


class OfferRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, offer: Offer) -> Offer: ...

    async def get_by_id(self, db: AsyncSession, offer_id: str) -> Offer | None: ...

    async def get_counter_of(self, db: AsyncSession, parent_offer_id: str) -> Offer | None: ...

    async def list_for_listing(self, db: AsyncSession, listing_id: str) -> list[Offer]: ...

    async def mark_accepted(
        self, db: AsyncSession, offer_id: str, now: datetime
    ) -> Offer | None: ...

    async def mark_rejected(
        self, db: AsyncSession, offer_id: str, now: datetime
    ) -> Offer | None: ...

    async def expire_pending_for_listing(
        self, db: AsyncSession, listing_id: str, now: datetime, except_offer_id: str | None = None
    ) -> list[Offer]: ...

    async def expire_due(self, db: AsyncSession, now: datetime) -> list[Offer]: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        now: datetime,
        limit: int,
        offset: int,
        seller_id: str | None = None,
        buyer_id: str | None = None,
        status: str | None = None,
    ) -> list[Offer]: ...

    async def count_for_user(
        self,
        db: AsyncSession,
        now: datetime,
        seller_id: str | None = None,
        buyer_id: str | None = None,
        status: str | None = None,
    ) -> int: ...
