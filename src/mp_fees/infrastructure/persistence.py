# src/mp_fees/infrastructure/persistence.py
"""SettingsRepository - raw SQL access to the platform_settings singleton."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_fees.domain.models import (
    DEFAULT_ESCROW_RELEASE_DAYS,
    DEFAULT_FREE_THRESHOLD_CENTS,
    DEFAULT_INSTANT_OFFER_FEE_BPS,
    DEFAULT_MARKETPLACE_FEE_BPS,
    SETTINGS_ID,
    PlatformSettings,
)

_SELECT_COLUMNS = """
    marketplace_fee_bps, free_threshold_cents, instant_offer_fee_bps,
    escrow_release_days, version, updated_at
"""

_GET_SETTINGS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM platform_settings WHERE id = :id
""")

# Concurrent first reads race on the insert; ON CONFLICT keeps exactly one row.
_INSERT_DEFAULTS_SQL = text("""
    INSERT INTO platform_settings
        (id, marketplace_fee_bps, free_threshold_cents, instant_offer_fee_bps,
         escrow_release_days, version)
    VALUES (:id, :marketplace_fee_bps, :free_threshold_cents, :instant_offer_fee_bps,
            :escrow_release_days, 1)
    ON CONFLICT (id) DO NOTHING
""")

_UPDATE_SETTINGS_SQL = text(f"""
    UPDATE platform_settings
    SET marketplace_fee_bps   = COALESCE(:marketplace_fee_bps, marketplace_fee_bps),
        free_threshold_cents  = COALESCE(:free_threshold_cents, free_threshold_cents),
        instant_offer_fee_bps = COALESCE(:instant_offer_fee_bps, instant_offer_fee_bps),
        escrow_release_days   = COALESCE(:escrow_release_days, escrow_release_days),
        version = version + 1,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_SELECT_COLUMNS}
""")

_UPDATABLE_FIELDS = (
    "marketplace_fee_bps",
    "free_threshold_cents",
    "instant_offer_fee_bps",
    "escrow_release_days",
)


def _row_to_settings(row: Any) -> PlatformSettings:
    return PlatformSettings(
        marketplace_fee_bps=row.marketplace_fee_bps,
        free_threshold_cents=row.free_threshold_cents,
        instant_offer_fee_bps=row.instant_offer_fee_bps,
        escrow_release_days=row.escrow_release_days,
        version=row.version,
        updated_at=row.updated_at,
    )


class SettingsRepository:
    """Concrete implementation of SettingsRepositoryProtocol using raw SQL."""

    async def get_or_create(self, db: AsyncSession) -> PlatformSettings:
        row = (await db.execute(_GET_SETTINGS_SQL, {"id": SETTINGS_ID})).fetchone()
        if row is None:
            await db.execute(
                _INSERT_DEFAULTS_SQL,
                {
                    "id": SETTINGS_ID,
                    "marketplace_fee_bps": DEFAULT_MARKETPLACE_FEE_BPS,
                    "free_threshold_cents": DEFAULT_FREE_THRESHOLD_CENTS,
                    "instant_offer_fee_bps": DEFAULT_INSTANT_OFFER_FEE_BPS,
                    "escrow_release_days": DEFAULT_ESCROW_RELEASE_DAYS,
                },
            )
            row = (await db.execute(_GET_SETTINGS_SQL, {"id": SETTINGS_ID})).fetchone()
        return _row_to_settings(row)

    async def update(self, db: AsyncSession, changes: dict[str, Any]) -> PlatformSettings:
        """Apply a partial update and bump version. Caller ensures the row exists."""
        params: dict[str, Any] = {field: changes.get(field) for field in _UPDATABLE_FIELDS}
        params["id"] = SETTINGS_ID
        row = (await db.execute(_UPDATE_SETTINGS_SQL, params)).fetchone()
        return _row_to_settings(row)
