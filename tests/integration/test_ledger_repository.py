"""Ledger inserts against the real schema, one per entry type."""

import pytest

from src.mp_common.database import async_session_factory
from src.mp_common.enums import LedgerEntryType
from src.mp_ledger.domain.models import NewLedgerEntry
from src.mp_ledger.infrastructure.persistence import LedgerRepository

pytestmark = pytest.mark.asyncio(loop_scope="session")


async def _buy(client, buyer, listing_id: str) -> str:
    resp = await client.post(
        "/api/v1/transactions", json={"listing_id": listing_id}, headers=buyer.headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]


@pytest.mark.parametrize("entry_type", [t.value for t in LedgerEntryType])
async def test_entry_without_revenue_is_stored_as_zero(
    client, seller, buyer, make_listing, entry_type
):
    tx_id = await _buy(client, buyer, await make_listing(seller, asking_price=80_000))
    repo = LedgerRepository()

    async with async_session_factory() as session:
        entry = await repo.insert(
            session,
            NewLedgerEntry(
                entry_type=entry_type, amount=80_000, to_user_id=seller.id, transaction_id=tx_id
            ),
        )
        await session.rollback()

    assert entry.entry_type == entry_type
    assert entry.platform_revenue == 0
    assert entry.status == "PENDING"


async def test_negative_revenue_round_trips(client, seller, buyer, make_listing):
    tx_id = await _buy(client, buyer, await make_listing(seller, asking_price=80_000))

    async with async_session_factory() as session:
        entry = await LedgerRepository().insert(
            session,
            NewLedgerEntry(
                entry_type=LedgerEntryType.CARD_FEE.value, amount=1_600,
                status="COMPLETED", platform_revenue=-1_600, transaction_id=tx_id,
            ),
        )
        await session.rollback()

    assert entry.platform_revenue == -1_600
