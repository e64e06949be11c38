# src/mp_offer/infrastructure/persistence.py
"""OfferRepository - raw SQL persistence implementation.

Status changes are conditional on status = 'PENDING'; accept and reject also
require the offer to be unexpired at the moment the statement runs, so a
lazily expired offer can never be acted on.
"""
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_offer.domain.models import Offer

_SELECT_COLUMNS = """
    id, listing_id, buyer_id, amount, message, status, parent_offer_id,
    created_at, expires_at, responded_at, updated_at
"""

_INSERT_OFFER_SQL = text(f"""
    INSERT INTO offers
        (listing_id, buyer_id, amount, message, status, parent_offer_id, expires_at)
    VALUES
        (:listing_id, :buyer_id, :amount, :message, :status, :parent_offer_id, :expires_at)
    RETURNING {_SELECT_COLUMNS}
""")

_GET_OFFER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM offers WHERE id = :id
""")

_GET_COUNTER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM offers WHERE parent_offer_id = :parent_offer_id
""")

_LIST_FOR_LISTING_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM offers WHERE listing_id = :listing_id
    ORDER BY created_at DESC, id DESC
""")

# Offers on the user's listings (seller_id) or made by the user (buyer_id).
# Status filters on the effective status so lazily expired offers read EXPIRED.
_USER_OFFERS_WHERE = """
    FROM offers o
    JOIN listings l ON l.id = o.listing_id
    WHERE (CAST(:seller_id AS TEXT) IS NULL OR l.seller_id = :seller_id)
      AND (CAST(:buyer_id AS TEXT) IS NULL OR o.buyer_id = :buyer_id)
      AND (CAST(:status AS TEXT) IS NULL OR
           CASE WHEN o.status = 'PENDING' AND o.expires_at <= :now THEN 'EXPIRED'
                ELSE o.status END = :status)
"""

_LIST_FOR_USER_SQL = text(f"""
    SELECT o.id, o.listing_id, o.buyer_id, o.amount, o.message, o.status,
           o.parent_offer_id, o.created_at, o.expires_at, o.responded_at, o.updated_at
    {_USER_OFFERS_WHERE}
    ORDER BY o.created_at DESC, o.id DESC
    LIMIT :limit OFFSET :offset
""")

_COUNT_FOR_USER_SQL = text(f"""
    SELECT COUNT(*)
    {_USER_OFFERS_WHERE}
""")

_MARK_ACCEPTED_SQL = text(f"""
    UPDATE offers
    SET status = 'ACCEPTED', responded_at = :now, updated_at = :now
    WHERE id = :id AND status = 'PENDING' AND expires_at > :now
    RETURNING {_SELECT_COLUMNS}
""")

_MARK_REJECTED_SQL = text(f"""
    UPDATE offers
    SET status = 'REJECTED', responded_at = :now, updated_at = :now
    WHERE id = :id AND status = 'PENDING' AND expires_at > :now
    RETURNING {_SELECT_COLUMNS}
""")

_EXPIRE_FOR_LISTING_SQL = text(f"""
    UPDATE offers
    SET status = 'EXPIRED', updated_at = :now
    WHERE listing_id = :listing_id
      AND status = 'PENDING'
      AND (CAST(:except_offer_id AS TEXT) IS NULL OR id <> :except_offer_id)
    RETURNING {_SELECT_COLUMNS}
""")

_EXPIRE_DUE_SQL = text(f"""
    UPDATE offers
    SET status = 'EXPIRED', updated_at = :now
    WHERE status = 'PENDING' AND expires_at <= :now
    RETURNING {_SELECT_COLUMNS}
""")


def _row_to_offer(row: Any) -> Offer:
    return Offer(
        id=row.id,
        listing_id=row.listing_id,
        buyer_id=row.buyer_id,
        amount=row.amount,
        message=row.message,
        status=row.status,
        parent_offer_id=row.parent_offer_id,
        created_at=row.created_at,
        expires_at=row.expires_at,
        responded_at=row.responded_at,
        updated_at=row.updated_at,
    )


class OfferRepository:
    """Concrete implementation of OfferRepositoryProtocol using raw SQL."""

    async def insert(self, db: AsyncSession, offer: Offer) -> Offer:
        result = await db.execute(
            _INSERT_OFFER_SQL,
            {
                "listing_id": offer.listing_id,
                "buyer_id": offer.buyer_id,
                "amount": offer.amount,
                "message": offer.message,
                "status": offer.status,
                "parent_offer_id": offer.parent_offer_id,
                "expires_at": offer.expires_at,
            },
        )
        return _row_to_offer(result.fetchone())

    async def get_by_id(self, db: AsyncSession, offer_id: str) -> Offer | None:
        row = (await db.execute(_GET_OFFER_SQL, {"id": offer_id})).fetchone()
        return _row_to_offer(row) if row else None

    async def get_counter_of(self, db: AsyncSession, parent_offer_id: str) -> Offer | None:
        row = (
            await db.execute(_GET_COUNTER_SQL, {"parent_offer_id": parent_offer_id})
        ).fetchone()
        return _row_to_offer(row) if row else None

    async def list_for_listing(self, db: AsyncSession, listing_id: str) -> list[Offer]:
        result = await db.execute(_LIST_FOR_LISTING_SQL, {"listing_id": listing_id})
        return [_row_to_offer(row) for row in result.fetchall()]

    async def mark_accepted(self, db: AsyncSession, offer_id: str, now: datetime) -> Offer | None:
        row = (await db.execute(_MARK_ACCEPTED_SQL, {"id": offer_id, "now": now})).fetchone()
        return _row_to_offer(row) if row else None

    async def mark_rejected(self, db: AsyncSession, offer_id: str, now: datetime) -> Offer | None:
        row = (await db.execute(_MARK_REJECTED_SQL, {"id": offer_id, "now": now})).fetchone()
        return _row_to_offer(row) if row else None

    async def expire_pending_for_listing(
        self, db: AsyncSession, listing_id: str, now: datetime, except_offer_id: str | None = None
    ) -> list[Offer]:
        result = await db.execute(
            _EXPIRE_FOR_LISTING_SQL,
            {"listing_id": listing_id, "now": now, "except_offer_id": except_offer_id},
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def expire_due(self, db: AsyncSession, now: datetime) -> list[Offer]:
        result = await db.execute(_EXPIRE_DUE_SQL, {"now": now})
        return [_row_to_offer(row) for row in result.fetchall()]

    async def list_for_user(
        self,
        db: AsyncSession,
        now: datetime,
        limit: int,
        offset: int,
        seller_id: str | None = None,
        buyer_id: str | None = None,
        status: str | None = None,
    ) -> list[Offer]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {
                "seller_id": seller_id,
                "buyer_id": buyer_id,
                "status": status,
                "now": now,
                "limit": limit,
                "offset": offset,
            },
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def count_for_user(
        self,
        db: AsyncSession,
        now: datetime,
        seller_id: str | None = None,
        buyer_id: str | None = None,
        status: str | None = None,
    ) -> int:
        result = await db.execute(
            _COUNT_FOR_USER_SQL,
            {"seller_id": seller_id, "buyer_id": buyer_id, "status": status, "now": now},
        )
        return result.scalar_one()
