# tests/unit/test_ledger_persistence.py
"""Unit tests for LedgerRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mp_ledger.domain.models import LedgerFilter, NewLedgerEntry
from src.mp_ledger.infrastructure.persistence import LedgerRepository

NOW = datetime(2026, 10, 19, tzinfo=UTC)


def _make_entry_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", 1)
    row.entry_type = kwargs.get("entry_type", "PLATFORM_FEE")
    row.status = kwargs.get("status", "PENDING")
    row.amount = kwargs.get("amount", 11_000)
    row.platform_revenue = kwargs.get("platform_revenue", 11_000)
    row.from_user_id = kwargs.get("from_user_id", "buyer")
    row.to_user_id = kwargs.get("to_user_id")
    row.transaction_id = kwargs.get("transaction_id", "tx-1")
    row.description = None
    row.created_at = NOW
    row.status_changed_at = kwargs.get("status_changed_at")
    return row


@pytest.fixture
def db():
    return MagicMock()


async def test_insert_maps_returned_row(db):
    result = MagicMock()
    result.fetchone.return_value = _make_entry_row(id=7)
    db.execute = AsyncMock(return_value=result)

    entry = await LedgerRepository().insert(
        db,
        NewLedgerEntry(
            entry_type="PLATFORM_FEE", amount=11_000, platform_revenue=11_000,
            from_user_id="buyer", transaction_id="tx-1",
        ),
    )

    assert entry.id == 7
    assert entry.status == "PENDING"
    assert db.execute.call_args.args[1]["status"] == "PENDING"


@pytest.mark.parametrize(
    "entry_type", ["PLATFORM_FEE", "PAYMENT_RECEIVED", "CARD_FEE", "SELLER_PAYOUT", "REFUND"]
)
async def test_insert_without_revenue_binds_zero(db, entry_type):
    result = MagicMock()
    result.fetchone.return_value = _make_entry_row(entry_type=entry_type, platform_revenue=0)
    db.execute = AsyncMock(return_value=result)

    await LedgerRepository().insert(
        db, NewLedgerEntry(entry_type=entry_type, amount=50_000, transaction_id="tx-1")
    )

    assert db.execute.call_args.args[1]["platform_revenue"] == 0


async def test_transition_pending_returns_moved_entries(db):
    result = MagicMock()
    result.fetchall.return_value = [_make_entry_row(status="COMPLETED", status_changed_at=NOW)]
    db.execute = AsyncMock(return_value=result)

    moved = await LedgerRepository().transition_pending(db, "tx-1", "PLATFORM_FEE", "COMPLETED")

    assert len(moved) == 1
    assert moved[0].status == "COMPLETED"
    assert db.execute.call_args.args[1] == {
        "transaction_id": "tx-1", "entry_type": "PLATFORM_FEE", "to_status": "COMPLETED",
    }


async def test_list_entries_binds_filter_and_paging(db):
    result = MagicMock()
    result.fetchall.return_value = []
    db.execute = AsyncMock(return_value=result)

    await LedgerRepository().list_entries(
        db, LedgerFilter(entry_type="REFUND", start_date=NOW), limit=20, offset=40
    )

    params = db.execute.call_args.args[1]
    assert params["entry_type"] == "REFUND"
    assert params["start_date"] == NOW
    assert params["status"] is None
    assert (params["limit"], params["offset"]) == (20, 40)


async def test_aggregate_coerces_totals(db):
    row = MagicMock()
    row.entry_count = 3
    row.total_amount = 250_000
    row.total_platform_revenue = 6_800
    result = MagicMock()
    result.fetchone.return_value = row
    db.execute = AsyncMock(return_value=result)

    totals = await LedgerRepository().aggregate(db, LedgerFilter())

    assert totals.entry_count == 3
    assert totals.total_amount == 250_000
    assert totals.total_platform_revenue == 6_800
