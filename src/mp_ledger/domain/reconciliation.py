# src/mp_ledger/domain/reconciliation.py
"""Cross-table audits: ledger vs transactions, listings vs transactions.

Each check returns a list of violation strings (empty = healthy) and logs
every violation at ERROR.
"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_RECOGNISED_FEE_REVENUE_SQL = text("""
    SELECT COALESCE(SUM(platform_revenue), 0)
    FROM ledger_entries
    WHERE entry_type = 'PLATFORM_FEE' AND status = 'COMPLETED'
""")

_COMPLETED_TRANSACTION_FEES_SQL = text("""
    SELECT COALESCE(SUM(platform_fee), 0)
    FROM transactions
    WHERE status = 'COMPLETED'
""")

# SOLD <=> exactly one transaction that is not CANCELLED
_LISTING_SALE_MISMATCH_SQL = text("""
    SELECT l.id, l.status, COUNT(t.id) AS live_transactions
    FROM listings l
    LEFT JOIN transactions t ON t.listing_id = l.id AND t.status <> 'CANCELLED'
    GROUP BY l.id, l.status
    HAVING (l.status = 'SOLD' AND COUNT(t.id) <> 1)
        OR (l.status <> 'SOLD' AND COUNT(t.id) > 0)
""")

# A live sale leaves no PENDING offer behind; a cancelled sale re-opens the listing
_LIVE_SALE_WITH_PENDING_SQL = text("""
    SELECT DISTINCT t.listing_id
    FROM transactions t
    JOIN offers o ON o.listing_id = t.listing_id AND o.status = 'PENDING'
    WHERE t.status <> 'CANCELLED'
""")


async def verify_revenue_reconciliation(db: AsyncSession) -> list[str]:
    """Recognised fee revenue in the ledger must equal fees on COMPLETED transactions."""
    violations: list[str] = []
    ledger_revenue = (await db.execute(_RECOGNISED_FEE_REVENUE_SQL)).scalar_one()
    transaction_fees = (await db.execute(_COMPLETED_TRANSACTION_FEES_SQL)).scalar_one()
    if ledger_revenue != transaction_fees:
        msg = (
            f"Revenue reconciliation failed: ledger PLATFORM_FEE COMPLETED={ledger_revenue} "
            f"!= transactions COMPLETED platform_fee={transaction_fees}"
        )
        violations.append(msg)
        logger.error(msg)
    return violations


async def verify_listing_invariants(db: AsyncSession) -> list[str]:
    violations: list[str] = []
    for row in (await db.execute(_LISTING_SALE_MISMATCH_SQL)).fetchall():
        msg = (
            f"Listing {row.id} is {row.status} with "
            f"{row.live_transactions} non-cancelled transaction(s)"
        )
        violations.append(msg)
        logger.error(msg)
    for row in (await db.execute(_LIVE_SALE_WITH_PENDING_SQL)).fetchall():
        msg = f"Listing {row.listing_id} has a live sale and PENDING offers"
        violations.append(msg)
        logger.error(msg)
    return violations
