# tests/unit/test_admin_service.py
"""Unit tests for AdminService and the reconciliation audits."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from src.mp_admin.application.service import AdminService
from src.mp_ledger.domain.reconciliation import (
    verify_listing_invariants,
    verify_revenue_reconciliation,
)


def _scalar(value: int) -> MagicMock:
    result = MagicMock()
    result.scalar_one.return_value = value
    return result


def _rows(rows: list) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = rows
    return result


class TestRevenueReconciliation:
    async def test_balanced(self):
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_scalar(16_500), _scalar(16_500)])
        assert await verify_revenue_reconciliation(db) == []

    async def test_mismatch_reported(self, caplog):
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_scalar(11_000), _scalar(16_500)])

        violations = await verify_revenue_reconciliation(db)

        assert len(violations) == 1
        assert "11000" in violations[0]
        assert "Revenue reconciliation failed" in caplog.text


class TestListingInvariants:
    async def test_healthy(self):
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_rows([]), _rows([])])
        assert await verify_listing_invariants(db) == []

    async def test_violations_listed(self):
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[
                _rows([SimpleNamespace(id="lst-1", status="SOLD", live_transactions=2)]),
                _rows([SimpleNamespace(listing_id="lst-2")]),
            ]
        )

        violations = await verify_listing_invariants(db)

        assert violations == [
            "Listing lst-1 is SOLD with 2 non-cancelled transaction(s)",
            "Listing lst-2 has a live sale and PENDING offers",
        ]

    async def test_pending_check_ignores_cancelled_sales(self):
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_rows([]), _rows([])])

        await verify_listing_invariants(db)

        pending_sql = str(db.execute.await_args_list[1].args[0])
        assert "t.status <> 'CANCELLED'" in pending_sql
        assert "o.status = 'PENDING'" in pending_sql


class TestAdminService:
    async def test_expire_offers_reports_count(self):
        offers = MagicMock()
        offers.expire_offers = AsyncMock(return_value=4)
        svc = AdminService(transactions=MagicMock(), offers=offers)

        assert await svc.expire_offers(MagicMock()) == {"expired": 4}

    async def test_invariants_combined(self):
        svc = AdminService(transactions=MagicMock(), offers=MagicMock())
        with (
            patch(
                "src.mp_admin.application.service.verify_revenue_reconciliation",
                AsyncMock(return_value=["revenue off"]),
            ),
            patch(
                "src.mp_admin.application.service.verify_listing_invariants",
                AsyncMock(return_value=[]),
            ),
        ):
            result = await svc.verify_all_invariants(MagicMock())

        assert result == {"ok": False, "violations": ["revenue off"]}

    async def test_stats_net_of_card_fees(self):
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[
                _rows([SimpleNamespace(status="ACTIVE", n=3), SimpleNamespace(status="SOLD", n=2)]),
                _rows([SimpleNamespace(status="PENDING", n=1)]),
                _rows([SimpleNamespace(status="COMPLETED", n=2)]),
                MagicMock(fetchone=MagicMock(return_value=SimpleNamespace(
                    fee_revenue=16_500, card_fee_cost=-4_300, net_revenue=12_200,
                ))),
                _scalar(415_000),
            ]
        )
        svc = AdminService(transactions=MagicMock(), offers=MagicMock())

        stats = await svc.get_stats(db)

        assert stats["listings"] == {"ACTIVE": 3, "SOLD": 2}
        assert stats["gmv_cents"] == 415_000
        assert stats["platform_revenue_cents"] == 16_500
        assert stats["card_fee_cost_cents"] == 4_300
        assert stats["net_revenue_cents"] == 12_200
        assert stats["net_revenue_display"] == "R122.00"

    async def test_transaction_reads_bypass_participation(self):
        transactions = MagicMock()
        transactions.get_transaction = AsyncMock(return_value="tx")
        svc = AdminService(transactions=transactions, offers=MagicMock())
        db = MagicMock()

        assert await svc.get_transaction("tx-1", db) == "tx"
        transactions.get_transaction.assert_awaited_once_with(db, "tx-1", "", is_admin=True)
