"""Completed-sale / completed-purchase counters on users.

Called from the transaction lifecycle inside the completing DB transaction, so
a counter moves exactly once per COMPLETED transaction.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

_INCREMENT_SALES_SQL = text("""
    UPDATE users SET total_sales = total_sales + 1, updated_at = NOW()
    WHERE id = CAST(:user_id AS UUID)
""")

_INCREMENT_PURCHASES_SQL = text("""
    UPDATE users SET total_purchases = total_purchases + 1, updated_at = NOW()
    WHERE id = CAST(:user_id AS UUID)
""")


async def record_completed_sale(db: AsyncSession, seller_id: str, buyer_id: str) -> None:
    await db.execute(_INCREMENT_SALES_SQL, {"user_id": seller_id})
    await db.execute(_INCREMENT_PURCHASES_SQL, {"user_id": buyer_id})
