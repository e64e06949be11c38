# src/mp_transaction/infrastructure/persistence.py
"""TransactionRepository - raw SQL persistence implementation.

All state changes are single UPDATE ... WHERE <expected state> ... RETURNING
statements. 0 rows means the row was not in the expected state when the
statement ran (or does not exist); the service re-reads and classifies.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_transaction.domain.models import (
    Transaction,
    TransactionCorrection,
    TransactionFilter,
    UserStats,
)

_SELECT_COLUMNS = """
    id, transaction_type, listing_id, seller_id, buyer_id, offer_id,
    item_price, shipping_cost, total_amount, platform_fee, seller_payout,
    fee_rate_bps, settings_version, escrow_release_days,
    status, payment_status, delivery_status,
    payment_method, payment_ref, card_fee,
    tracking_number, courier_name, dispute_reason, resolution_note,
    created_at, updated_at, paid_at, shipped_at, delivered_at,
    completed_at, disputed_at, cancelled_at, payout_release_at
"""

# The partial unique index on listing_id (status <> 'CANCELLED') backs the
# availability gate: a second live sale for a listing fails here even if the
# gate were bypassed.
_INSERT_TRANSACTION_SQL = text(f"""
    INSERT INTO transactions
        (transaction_type, listing_id, seller_id, buyer_id, offer_id,
         item_price, shipping_cost, total_amount, platform_fee, seller_payout,
         fee_rate_bps, settings_version, escrow_release_days,
         status, payment_status, delivery_status)
    VALUES
        (:transaction_type, :listing_id, :seller_id, :buyer_id, :offer_id,
         :item_price, :shipping_cost, :total_amount, :platform_fee, :seller_payout,
         :fee_rate_bps, :settings_version, :escrow_release_days,
         :status, :payment_status, :delivery_status)
    RETURNING {_SELECT_COLUMNS}
""")

_GET_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM transactions WHERE id = :id
""")

_GET_BY_OFFER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM transactions WHERE offer_id = :offer_id
""")

_GET_LIVE_FOR_LISTING_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM transactions WHERE listing_id = :listing_id AND status <> 'CANCELLED'
""")

_MARK_PAID_SQL = text(f"""
    UPDATE transactions
    SET payment_status = :payment_status,
        payment_method = :payment_method,
        payment_ref = :payment_ref,
        card_fee = :card_fee,
        paid_at = :now,
        updated_at = :now
    WHERE id = :id AND status = 'PAYMENT_PENDING' AND payment_status = 'PENDING'
    RETURNING {_SELECT_COLUMNS}
""")

_MARK_SHIPPED_SQL = text(f"""
    UPDATE transactions
    SET status = 'SHIPPED',
        delivery_status = 'SHIPPED',
        tracking_number = :tracking_number,
        courier_name = :courier_name,
        shipped_at = :now,
        updated_at = :now
    WHERE id = :id
      AND status = 'PAYMENT_PENDING'
      AND payment_status IN ('VERIFIED', 'HELD_ESCROW')
    RETURNING {_SELECT_COLUMNS}
""")

_MARK_DELIVERED_SQL = text(f"""
    UPDATE transactions
    SET delivery_status = 'DELIVERED',
        delivered_at = :now,
        updated_at = :now
    WHERE id = :id AND status = 'SHIPPED' AND delivered_at IS NULL
    RETURNING {_SELECT_COLUMNS}
""")

_MARK_COMPLETED_SQL = text(f"""
    UPDATE transactions
    SET status = 'COMPLETED',
        delivery_status = 'DELIVERED',
        delivered_at = COALESCE(delivered_at, :now),
        completed_at = :now,
        payout_release_at = :payout_release_at,
        resolution_note = COALESCE(:resolution_note, resolution_note),
        updated_at = :now
    WHERE id = :id
      AND status = :from_status
      AND payment_status IN ('VERIFIED', 'HELD_ESCROW')
    RETURNING {_SELECT_COLUMNS}
""")

_MARK_DISPUTED_SQL = text(f"""
    UPDATE transactions
    SET status = 'DISPUTED',
        dispute_reason = :reason,
        disputed_at = :now,
        updated_at = :now
    WHERE id = :id AND status IN ('PAYMENT_PENDING', 'SHIPPED')
    RETURNING {_SELECT_COLUMNS}
""")

# Participants may only cancel before payment; administrators cancel from DISPUTED.
_MARK_CANCELLED_SQL = text(f"""
    UPDATE transactions
    SET status = 'CANCELLED',
        cancelled_at = :now,
        resolution_note = COALESCE(:resolution_note, resolution_note),
        updated_at = :now
    WHERE id = :id
      AND status = :from_status
      AND (status = 'DISPUTED' OR payment_status = 'PENDING')
    RETURNING {_SELECT_COLUMNS}
""")


_FILTER_WHERE = """
    WHERE (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:payment_status AS TEXT) IS NULL OR payment_status = :payment_status)
      AND (CAST(:transaction_type AS TEXT) IS NULL OR transaction_type = :transaction_type)
      AND (CAST(:seller_id AS TEXT) IS NULL OR seller_id = :seller_id)
      AND (CAST(:buyer_id AS TEXT) IS NULL OR buyer_id = :buyer_id)
      AND (CAST(:participant_id AS TEXT) IS NULL
           OR seller_id = :participant_id OR buyer_id = :participant_id)
"""

_LIST_TRANSACTIONS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM transactions
    {_FILTER_WHERE}
    ORDER BY created_at DESC, id DESC
    LIMIT :limit OFFSET :offset
""")

_COUNT_TRANSACTIONS_SQL = text(f"""
    SELECT COUNT(*) FROM transactions
    {_FILTER_WHERE}
""")

# Money columns move together: the payout always follows the corrected fee.
# expected_fee makes the write conditional on the fee the guard inspected.
_APPLY_CORRECTION_SQL = text(f"""
    UPDATE transactions
    SET platform_fee = COALESCE(:platform_fee, platform_fee),
        seller_payout = item_price - COALESCE(:platform_fee, platform_fee),
        tracking_number = COALESCE(:tracking_number, tracking_number),
        courier_name = COALESCE(:courier_name, courier_name),
        payment_ref = COALESCE(:payment_ref, payment_ref),
        resolution_note = LEFT(CONCAT_WS(' | ', resolution_note, CAST(:note AS TEXT)), 2000),
        updated_at = :now
    WHERE id = :id
      AND status = :expected_status
      AND platform_fee = :expected_fee
    RETURNING {_SELECT_COLUMNS}
""")

_USER_STATS_SQL = text("""
    SELECT
        (SELECT COUNT(*) FROM listings WHERE seller_id = :user_id) AS listings_total,
        (SELECT COUNT(*) FROM listings
          WHERE seller_id = :user_id AND status = 'ACTIVE') AS listings_active,
        (SELECT COUNT(*) FROM listings
          WHERE seller_id = :user_id AND status = 'SOLD') AS listings_sold,
        (SELECT COUNT(*) FROM offers o JOIN listings l ON l.id = o.listing_id
          WHERE l.seller_id = :user_id) AS offers_received,
        (SELECT COUNT(*) FROM offers o JOIN listings l ON l.id = o.listing_id
          WHERE l.seller_id = :user_id
            AND o.status = 'PENDING' AND o.expires_at > NOW()) AS offers_pending,
        (SELECT COUNT(*) FROM offers WHERE buyer_id = :user_id) AS offers_made,
        COUNT(*) FILTER (WHERE t.seller_id = :user_id AND t.status = 'COMPLETED')
            AS sales_completed,
        COUNT(*) FILTER (WHERE t.seller_id = :user_id
                         AND t.status NOT IN ('COMPLETED', 'CANCELLED')) AS sales_open,
        COALESCE(SUM(t.seller_payout)
                 FILTER (WHERE t.seller_id = :user_id AND t.status = 'COMPLETED'), 0)
            AS earnings,
        COUNT(*) FILTER (WHERE t.buyer_id = :user_id AND t.status = 'COMPLETED')
            AS purchases_completed,
        COUNT(*) FILTER (WHERE t.buyer_id = :user_id
                         AND t.status NOT IN ('COMPLETED', 'CANCELLED')) AS purchases_open,
        COALESCE(SUM(t.total_amount)
                 FILTER (WHERE t.buyer_id = :user_id AND t.status = 'COMPLETED'), 0)
            AS spent,
        (SELECT COALESCE(MAX(total_sales), 0) FROM users
          WHERE CAST(id AS TEXT) = :user_id) AS total_sales,
        (SELECT COALESCE(MAX(total_purchases), 0) FROM users
          WHERE CAST(id AS TEXT) = :user_id) AS total_purchases
    FROM transactions t
    WHERE t.seller_id = :user_id OR t.buyer_id = :user_id
""")


def _row_to_transaction(row: Any) -> Transaction:
    return Transaction(
        id=row.id,
        transaction_type=row.transaction_type,
        listing_id=row.listing_id,
        seller_id=row.seller_id,
        buyer_id=row.buyer_id,
        offer_id=row.offer_id,
        item_price=row.item_price,
        shipping_cost=row.shipping_cost,
        total_amount=row.total_amount,
        platform_fee=row.platform_fee,
        seller_payout=row.seller_payout,
        fee_rate_bps=row.fee_rate_bps,
        settings_version=row.settings_version,
        escrow_release_days=row.escrow_release_days,
        status=row.status,
        payment_status=row.payment_status,
        delivery_status=row.delivery_status,
        payment_method=row.payment_method,
        payment_ref=row.payment_ref,
        card_fee=row.card_fee,
        tracking_number=row.tracking_number,
        courier_name=row.courier_name,
        dispute_reason=row.dispute_reason,
        resolution_note=row.resolution_note,
        created_at=row.created_at,
        updated_at=row.updated_at,
        paid_at=row.paid_at,
        shipped_at=row.shipped_at,
        delivered_at=row.delivered_at,
        completed_at=row.completed_at,
        disputed_at=row.disputed_at,
        cancelled_at=row.cancelled_at,
        payout_release_at=row.payout_release_at,
    )


def _one_or_none(result: Any) -> Transaction | None:
    row = result.fetchone()
    return _row_to_transaction(row) if row else None


def _filter_params(f: TransactionFilter) -> dict[str, Any]:
    return {
        "status": f.status,
        "payment_status": f.payment_status,
        "transaction_type": f.transaction_type,
        "seller_id": f.seller_id,
        "buyer_id": f.buyer_id,
        "participant_id": f.participant_id,
    }


class TransactionRepository:
    """Concrete implementation of TransactionRepositoryProtocol using raw SQL."""

    async def insert(self, db: AsyncSession, tx: Transaction) -> Transaction:
        result = await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "transaction_type": tx.transaction_type,
                "listing_id": tx.listing_id,
                "seller_id": tx.seller_id,
                "buyer_id": tx.buyer_id,
                "offer_id": tx.offer_id,
                "item_price": tx.item_price,
                "shipping_cost": tx.shipping_cost,
                "total_amount": tx.total_amount,
                "platform_fee": tx.platform_fee,
                "seller_payout": tx.seller_payout,
                "fee_rate_bps": tx.fee_rate_bps,
                "settings_version": tx.settings_version,
                "escrow_release_days": tx.escrow_release_days,
                "status": tx.status,
                "payment_status": tx.payment_status,
                "delivery_status": tx.delivery_status,
            },
        )
        return _row_to_transaction(result.fetchone())

    async def get_by_id(self, db: AsyncSession, transaction_id: str) -> Transaction | None:
        return _one_or_none(await db.execute(_GET_BY_ID_SQL, {"id": transaction_id}))

    async def get_by_offer_id(self, db: AsyncSession, offer_id: str) -> Transaction | None:
        return _one_or_none(await db.execute(_GET_BY_OFFER_SQL, {"offer_id": offer_id}))

    async def get_live_for_listing(
        self, db: AsyncSession, listing_id: str
    ) -> Transaction | None:
        return _one_or_none(
            await db.execute(_GET_LIVE_FOR_LISTING_SQL, {"listing_id": listing_id})
        )

    async def mark_paid(
        self,
        db: AsyncSession,
        transaction_id: str,
        payment_status: str,
        payment_method: str,
        payment_ref: str | None,
        card_fee: int,
        now: datetime,
    ) -> Transaction | None:
        result = await db.execute(
            _MARK_PAID_SQL,
            {
                "id": transaction_id,
                "payment_status": payment_status,
                "payment_method": payment_method,
                "payment_ref": payment_ref,
                "card_fee": card_fee,
                "now": now,
            },
        )
        return _one_or_none(result)

    async def mark_shipped(
        self,
        db: AsyncSession,
        transaction_id: str,
        tracking_number: str,
        courier_name: str | None,
        now: datetime,
    ) -> Transaction | None:
        result = await db.execute(
            _MARK_SHIPPED_SQL,
            {
                "id": transaction_id,
                "tracking_number": tracking_number,
                "courier_name": courier_name,
                "now": now,
            },
        )
        return _one_or_none(result)

    async def mark_delivered(
        self, db: AsyncSession, transaction_id: str, now: datetime
    ) -> Transaction | None:
        return _one_or_none(
            await db.execute(_MARK_DELIVERED_SQL, {"id": transaction_id, "now": now})
        )

    async def mark_completed(
        self,
        db: AsyncSession,
        transaction_id: str,
        from_status: str,
        now: datetime,
        payout_release_at: datetime,
        resolution_note: str | None = None,
    ) -> Transaction | None:
        result = await db.execute(
            _MARK_COMPLETED_SQL,
            {
                "id": transaction_id,
                "from_status": from_status,
                "now": now,
                "payout_release_at": payout_release_at,
                "resolution_note": resolution_note,
            },
        )
        return _one_or_none(result)

    async def mark_disputed(
        self, db: AsyncSession, transaction_id: str, reason: str, now: datetime
    ) -> Transaction | None:
        result = await db.execute(
            _MARK_DISPUTED_SQL, {"id": transaction_id, "reason": reason, "now": now}
        )
        return _one_or_none(result)

    async def mark_cancelled(
        self,
        db: AsyncSession,
        transaction_id: str,
        from_status: str,
        now: datetime,
        resolution_note: str | None = None,
    ) -> Transaction | None:
        result = await db.execute(
            _MARK_CANCELLED_SQL,
            {
                "id": transaction_id,
                "from_status": from_status,
                "now": now,
                "resolution_note": resolution_note,
            },
        )
        return _one_or_none(result)

    async def list_transactions(
        self, db: AsyncSession, f: TransactionFilter, limit: int, offset: int
    ) -> list[Transaction]:
        params = _filter_params(f)
        params.update(limit=limit, offset=offset)
        result = await db.execute(_LIST_TRANSACTIONS_SQL, params)
        return [_row_to_transaction(row) for row in result.fetchall()]

    async def count_transactions(self, db: AsyncSession, f: TransactionFilter) -> int:
        result = await db.execute(_COUNT_TRANSACTIONS_SQL, _filter_params(f))
        return int(result.scalar_one())

    async def apply_correction(
        self,
        db: AsyncSession,
        current: Transaction,
        correction: TransactionCorrection,
        now: datetime,
    ) -> Transaction | None:
        result = await db.execute(
            _APPLY_CORRECTION_SQL,
            {
                "id": current.id,
                "expected_status": current.status,
                "expected_fee": current.platform_fee,
                "platform_fee": correction.platform_fee,
                "tracking_number": correction.tracking_number,
                "courier_name": correction.courier_name,
                "payment_ref": correction.payment_ref,
                "note": correction.note,
                "now": now,
            },
        )
        return _one_or_none(result)

    async def user_stats(self, db: AsyncSession, user_id: str) -> UserStats:
        row = (await db.execute(_USER_STATS_SQL, {"user_id": user_id})).fetchone()
        return UserStats(
            listings_total=int(row.listings_total),
            listings_active=int(row.listings_active),
            listings_sold=int(row.listings_sold),
            offers_received=int(row.offers_received),
            offers_pending=int(row.offers_pending),
            offers_made=int(row.offers_made),
            sales_completed=int(row.sales_completed),
            sales_open=int(row.sales_open),
            earnings=int(row.earnings),
            purchases_completed=int(row.purchases_completed),
            purchases_open=int(row.purchases_open),
            spent=int(row.spent),
            total_sales=int(row.total_sales),
            total_purchases=int(row.total_purchases),
        )
