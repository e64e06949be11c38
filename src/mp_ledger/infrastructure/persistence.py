# src/mp_ledger/infrastructure/persistence.py
"""LedgerRepository - raw SQL over the append-only ledger_entries table.

Financial columns are written once by INSERT. The only UPDATE is the
PENDING -> COMPLETED/FAILED status transition, guarded on status = 'PENDING'.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_ledger.domain.models import LedgerEntry, LedgerFilter, LedgerTotals, NewLedgerEntry

_SELECT_COLUMNS = """
    id, entry_type, status, amount, platform_revenue,
    from_user_id, to_user_id, transaction_id, description,
    created_at, status_changed_at
"""

_INSERT_ENTRY_SQL = text(f"""
    INSERT INTO ledger_entries
        (entry_type, status, amount, platform_revenue,
         from_user_id, to_user_id, transaction_id, description)
    VALUES
        (:entry_type, :status, :amount, :platform_revenue,
         :from_user_id, :to_user_id, :transaction_id, :description)
    RETURNING {_SELECT_COLUMNS}
""")

_TRANSITION_PENDING_SQL = text(f"""
    UPDATE ledger_entries
    SET status = :to_status, status_changed_at = NOW()
    WHERE transaction_id = :transaction_id
      AND entry_type = :entry_type
      AND status = 'PENDING'
    RETURNING {_SELECT_COLUMNS}
""")

_LIST_FOR_TRANSACTION_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM ledger_entries
    WHERE transaction_id = :transaction_id
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = :entry_type)
    ORDER BY id
""")

_FILTER_WHERE = """
    WHERE (CAST(:entry_type AS TEXT) IS NULL OR entry_type = :entry_type)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:from_user_id AS TEXT) IS NULL OR from_user_id = :from_user_id)
      AND (CAST(:to_user_id AS TEXT) IS NULL OR to_user_id = :to_user_id)
      AND (CAST(:transaction_id AS TEXT) IS NULL OR transaction_id = :transaction_id)
      AND (CAST(:start_date AS TIMESTAMPTZ) IS NULL OR created_at >= :start_date)
      AND (CAST(:end_date AS TIMESTAMPTZ) IS NULL OR created_at <= :end_date)
"""

_LIST_ENTRIES_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM ledger_entries
    {_FILTER_WHERE}
    ORDER BY created_at DESC, id DESC
    LIMIT :limit OFFSET :offset
""")

_COUNT_ENTRIES_SQL = text(f"""
    SELECT COUNT(*) FROM ledger_entries
    {_FILTER_WHERE}
""")

_AGGREGATE_SQL = text(f"""
    SELECT COUNT(*) AS entry_count,
           COALESCE(SUM(amount), 0) AS total_amount,
           COALESCE(SUM(platform_revenue), 0) AS total_platform_revenue
    FROM ledger_entries
    {_FILTER_WHERE}
""")


def _row_to_entry(row: Any) -> LedgerEntry:
    return LedgerEntry(
        id=row.id,
        entry_type=row.entry_type,
        status=row.status,
        amount=row.amount,
        platform_revenue=row.platform_revenue,
        from_user_id=row.from_user_id,
        to_user_id=row.to_user_id,
        transaction_id=row.transaction_id,
        description=row.description,
        created_at=row.created_at,
        status_changed_at=row.status_changed_at,
    )


def _filter_params(f: LedgerFilter) -> dict[str, Any]:
    return {
        "entry_type": f.entry_type,
        "status": f.status,
        "from_user_id": f.from_user_id,
        "to_user_id": f.to_user_id,
        "transaction_id": f.transaction_id,
        "start_date": f.start_date,
        "end_date": f.end_date,
    }


class LedgerRepository:
    """Concrete implementation of LedgerRepositoryProtocol using raw SQL."""

    async def insert(self, db: AsyncSession, entry: NewLedgerEntry) -> LedgerEntry:
        result = await db.execute(
            _INSERT_ENTRY_SQL,
            {
                "entry_type": entry.entry_type,
                "status": entry.status,
                "amount": entry.amount,
                "platform_revenue": entry.platform_revenue,
                "from_user_id": entry.from_user_id,
                "to_user_id": entry.to_user_id,
                "transaction_id": entry.transaction_id,
                "description": entry.description,
            },
        )
        return _row_to_entry(result.fetchone())

    async def transition_pending(
        self, db: AsyncSession, transaction_id: str, entry_type: str, to_status: str
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _TRANSITION_PENDING_SQL,
            {"transaction_id": transaction_id, "entry_type": entry_type, "to_status": to_status},
        )
        return [_row_to_entry(row) for row in result.fetchall()]

    async def list_for_transaction(
        self, db: AsyncSession, transaction_id: str, entry_type: str | None = None
    ) -> list[LedgerEntry]:
        result = await db.execute(
            _LIST_FOR_TRANSACTION_SQL,
            {"transaction_id": transaction_id, "entry_type": entry_type},
        )
        return [_row_to_entry(row) for row in result.fetchall()]

    async def list_entries(
        self, db: AsyncSession, f: LedgerFilter, limit: int, offset: int
    ) -> list[LedgerEntry]:
        params = _filter_params(f)
        params.update(limit=limit, offset=offset)
        result = await db.execute(_LIST_ENTRIES_SQL, params)
        return [_row_to_entry(row) for row in result.fetchall()]

    async def count_entries(self, db: AsyncSession, f: LedgerFilter) -> int:
        result = await db.execute(_COUNT_ENTRIES_SQL, _filter_params(f))
        return int(result.scalar_one())

    async def aggregate(self, db: AsyncSession, f: LedgerFilter) -> LedgerTotals:
        row = (await db.execute(_AGGREGATE_SQL, _filter_params(f))).fetchone()
        return LedgerTotals(
            entry_count=int(row.entry_count),
            total_amount=int(row.total_amount),
            total_platform_revenue=int(row.total_platform_revenue),
        )
