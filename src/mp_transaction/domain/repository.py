# src/mp_transaction/domain/repository.py
"""TransactionRepository Protocol - interface contract for persistence layer.

Every ``mark_*`` method is a conditional UPDATE that returns the updated row,
or None when the row was not in the required state.
"""
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_transaction.domain.models import (
    Transaction,
    TransactionCorrection,
    TransactionFilter,
    UserStats,
)


class TransactionRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, tx: Transaction) -> Transaction: ...

    async def get_by_id(self, db: AsyncSession, transaction_id: str) -> Transaction | None: ...

    async def get_by_offer_id(self, db: AsyncSession, offer_id: str) -> Transaction | None: ...

    async def get_live_for_listing(
        self, db: AsyncSession, listing_id: str
    ) -> Transaction | None: ...

    async def mark_paid(
        self,
        db: AsyncSession,
        transaction_id: str,
        payment_status: str,
        payment_method: str,
        payment_ref: str | None,
        card_fee: int,
        now: datetime,
    ) -> Transaction | None: ...

    async def mark_shipped(
        self,
        db: AsyncSession,
        transaction_id: str,
        tracking_number: str,
        courier_name: str | None,
        now: datetime,
    ) -> Transaction | None: ...

    async def mark_delivered(
        self, db: AsyncSession, transaction_id: str, now: datetime
    ) -> Transaction | None: ...

    async def mark_completed(
        self,
        db: AsyncSession,
        transaction_id: str,
        from_status: str,
        now: datetime,
        payout_release_at: datetime,
        resolution_note: str | None = None,
    ) -> Transaction | None: ...

    async def mark_disputed(
        self, db: AsyncSession, transaction_id: str, reason: str, now: datetime
    ) -> Transaction | None: ...

    async def mark_cancelled(
        self,
        db: AsyncSession,
        transaction_id: str,
        from_status: str,
        now: datetime,
        resolution_note: str | None = None,
    ) -> Transaction | None: ...

    async def list_transactions(
        self, db: AsyncSession, f: TransactionFilter, limit: int, offset: int
    ) -> list[Transaction]: ...

    async def count_transactions(self, db: AsyncSession, f: TransactionFilter) -> int: ...

    async def apply_correction(
        self,
        db: AsyncSession,
        current: Transaction,
        correction: TransactionCorrection,
        now: datetime,
    ) -> Transaction | None: ...

    async def user_stats(self, db: AsyncSession, user_id: str) -> UserStats: ...
