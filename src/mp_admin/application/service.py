# src/mp_admin/application/service.py
"""Admin application service: transaction oversight, expiry sweep, stats, audits."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.cents import cents_to_display
from src.mp_ledger.domain.reconciliation import (
    verify_listing_invariants,
    verify_revenue_reconciliation,
)
from src.mp_offer.application.service import OfferApplicationService
from src.mp_transaction.application.schemas import (
    CorrectTransactionRequest,
    ResolveDisputeRequest,
    TransactionPageResponse,
    TransactionResponse,
)
from src.mp_transaction.application.service import TransactionApplicationService
from src.mp_transaction.domain.models import TransactionFilter

_LISTING_COUNTS_SQL = text("SELECT status, COUNT(*) AS n FROM listings GROUP BY status")
_OFFER_COUNTS_SQL = text("SELECT status, COUNT(*) AS n FROM offers GROUP BY status")
_TRANSACTION_COUNTS_SQL = text(
    "SELECT status, COUNT(*) AS n FROM transactions GROUP BY status"
)
# Recognised revenue: COMPLETED entries only
_REVENUE_SQL = text("""
    SELECT
        COALESCE(SUM(platform_revenue) FILTER (WHERE entry_type = 'PLATFORM_FEE'), 0)
            AS fee_revenue,
        COALESCE(SUM(platform_revenue) FILTER (WHERE entry_type = 'CARD_FEE'), 0)
            AS card_fee_cost,
        COALESCE(SUM(platform_revenue), 0) AS net_revenue
    FROM ledger_entries
    WHERE status = 'COMPLETED'
""")
_GMV_SQL = text("""
    SELECT COALESCE(SUM(total_amount), 0) AS gmv
    FROM transactions WHERE status = 'COMPLETED'
""")


def _counts(rows: Any) -> dict[str, int]:
    return {row.status: int(row.n) for row in rows}


class AdminService:
    def __init__(
        self,
        transactions: TransactionApplicationService | None = None,
        offers: OfferApplicationService | None = None,
    ) -> None:
        self._transactions = transactions or TransactionApplicationService()
        self._offers = offers or OfferApplicationService()

    async def resolve_dispute(
        self, transaction_id: str, req: ResolveDisputeRequest, db: AsyncSession
    ) -> TransactionResponse:
        return await self._transactions.resolve_dispute(db, transaction_id, req)

    async def list_transactions(
        self, f: TransactionFilter, page: int, limit: int, db: AsyncSession
    ) -> TransactionPageResponse:
        return await self._transactions.list_transactions(db, f, page, limit)

    async def get_transaction(self, transaction_id: str, db: AsyncSession) -> TransactionResponse:
        return await self._transactions.get_transaction(db, transaction_id, "", is_admin=True)

    async def correct_transaction(
        self, transaction_id: str, req: CorrectTransactionRequest, admin_id: str, db: AsyncSession
    ) -> TransactionResponse:
        return await self._transactions.correct_transaction(db, transaction_id, req, admin_id)

    async def expire_offers(self, db: AsyncSession) -> dict[str, Any]:
        expired = await self._offers.expire_offers(db)
        return {"expired": expired}

    async def get_stats(self, db: AsyncSession) -> dict[str, Any]:
        listings = _counts((await db.execute(_LISTING_COUNTS_SQL)).fetchall())
        offers = _counts((await db.execute(_OFFER_COUNTS_SQL)).fetchall())
        transactions = _counts((await db.execute(_TRANSACTION_COUNTS_SQL)).fetchall())
        revenue = (await db.execute(_REVENUE_SQL)).fetchone()
        gmv = int((await db.execute(_GMV_SQL)).scalar_one())
        fee_revenue = int(revenue.fee_revenue)
        net_revenue = int(revenue.net_revenue)
        return {
            "listings": listings,
            "offers": offers,
            "transactions": transactions,
            "gmv_cents": gmv,
            "gmv_display": cents_to_display(gmv),
            "platform_revenue_cents": fee_revenue,
            "platform_revenue_display": cents_to_display(fee_revenue),
            "card_fee_cost_cents": -int(revenue.card_fee_cost),
            "net_revenue_cents": net_revenue,
            "net_revenue_display": cents_to_display(net_revenue),
        }

    async def verify_all_invariants(self, db: AsyncSession) -> dict[str, object]:
        """Ledger-vs-transaction revenue reconciliation plus listing/offer audits."""
        violations: list[str] = []
        violations.extend(await verify_revenue_reconciliation(db))
        violations.extend(await verify_listing_invariants(db))
        return {"ok": len(violations) == 0, "violations": violations}
