# src/mp_ledger/domain/repository.py
"""LedgerRepository Protocol - interface contract for persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_ledger.domain.models import LedgerEntry, LedgerFilter, LedgerTotals, NewLedgerEntry


class LedgerRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, entry: NewLedgerEntry) -> LedgerEntry: ...

    async def transition_pending(
        self, db: AsyncSession, transaction_id: str, entry_type: str, to_status: str
    ) -> list[LedgerEntry]: ...

    async def list_for_transaction(
        self, db: AsyncSession, transaction_id: str, entry_type: str | None = None
    ) -> list[LedgerEntry]: ...

    async def list_entries(
        self, db: AsyncSession, f: LedgerFilter, limit: int, offset: int
    ) -> list[LedgerEntry]: ...

    async def count_entries(self, db: AsyncSession, f: LedgerFilter) -> int: ...

    async def aggregate(self, db: AsyncSession, f: LedgerFilter) -> LedgerTotals: ...
