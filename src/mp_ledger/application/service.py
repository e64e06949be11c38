"""LedgerService - the Ledger Recorder.

``record`` and ``transition_status`` run inside the caller's DB transaction
and never commit. ``list_ledger`` is a read-only report.
"""

import dataclasses
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.enums import LedgerEntryStatus
from src.mp_common.errors import InvalidLedgerTransitionError
from src.mp_common.response import PaginationMeta
from src.mp_ledger.application.schemas import (
    LedgerEntryResponse,
    LedgerPageResponse,
    LedgerTotalsResponse,
)
from src.mp_ledger.domain.models import LedgerEntry, LedgerFilter, LedgerTotals, NewLedgerEntry
from src.mp_ledger.domain.repository import LedgerRepositoryProtocol
from src.mp_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger(__name__)

_TERMINAL = (LedgerEntryStatus.COMPLETED, LedgerEntryStatus.FAILED)


class LedgerService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def record(self, db: AsyncSession, entry: NewLedgerEntry) -> LedgerEntry:
        """Append one entry. Amounts are never edited afterwards."""
        if entry.amount < 0:
            raise ValueError(f"Ledger amount must be >= 0 cents, got {entry.amount}")
        return await self._repo.insert(db, entry)

    async def transition_status(
        self,
        db: AsyncSession,
        transaction_id: str,
        entry_type: str,
        to_status: LedgerEntryStatus,
    ) -> list[LedgerEntry]:
        """Move the transaction's PENDING entries of ``entry_type`` to a terminal status.

        Returns the entries that moved. Entries already at ``to_status`` are a
        replay and return an empty list; entries at the other terminal status
        raise InvalidLedgerTransitionError.
        """
        if to_status not in _TERMINAL:
            raise ValueError(f"Ledger entries may only move to COMPLETED or FAILED, got {to_status}")
        moved = await self._repo.transition_pending(db, transaction_id, entry_type, to_status.value)
        if moved:
            return moved
        for existing in await self._repo.list_for_transaction(db, transaction_id, entry_type):
            if existing.status != to_status.value:
                raise InvalidLedgerTransitionError(existing.id, existing.status)
        return []

    async def aggregate(self, db: AsyncSession, f: LedgerFilter) -> LedgerTotals:
        """Sum amount and platform revenue over matching COMPLETED entries."""
        return await self._repo.aggregate(
            db, dataclasses.replace(f, status=LedgerEntryStatus.COMPLETED.value)
        )

    async def list_ledger(
        self, db: AsyncSession, f: LedgerFilter, page: int, limit: int
    ) -> LedgerPageResponse:
        offset = (page - 1) * limit
        entries = await self._repo.list_entries(db, f, limit, offset)
        total = await self._repo.count_entries(db, f)
        totals = await self.aggregate(db, f)
        return LedgerPageResponse(
            items=[LedgerEntryResponse.from_domain(e) for e in entries],
            totals=LedgerTotalsResponse.from_domain(totals),
            pagination=PaginationMeta.of(page, limit, total),
        )
