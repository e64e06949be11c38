"""FeeApplicationService - platform settings administration and fee previews."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import InvalidSettingsError
from src.mp_fees.application.schemas import (
    FeePreviewResponse,
    SettingsResponse,
    UpdateSettingsRequest,
)
from src.mp_fees.domain.policy import compute_marketplace_fees
from src.mp_fees.domain.repository import SettingsRepositoryProtocol
from src.mp_fees.infrastructure.persistence import SettingsRepository

logger = logging.getLogger(__name__)


class FeeApplicationService:
    def __init__(self, repo: SettingsRepositoryProtocol | None = None) -> None:
        self._repo: SettingsRepositoryProtocol = repo or SettingsRepository()

    async def get_settings(self, db: AsyncSession) -> SettingsResponse:
        try:
            settings = await self._repo.get_or_create(db)
            await db.commit()  # persist the lazily created defaults row
        except Exception:
            await db.rollback()
            raise
        return SettingsResponse.from_domain(settings)

    async def update_settings(
        self, db: AsyncSession, req: UpdateSettingsRequest
    ) -> SettingsResponse:
        changes = req.model_dump(exclude_none=True)
        if not changes:
            raise InvalidSettingsError("At least one setting must be provided")
        try:
            await self._repo.get_or_create(db)
            updated = await self._repo.update(db, changes)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Platform settings updated to version %d: %s", updated.version, changes)
        return SettingsResponse.from_domain(updated)

    async def preview(self, db: AsyncSession, item_price: int) -> FeePreviewResponse:
        settings = await self._repo.get_or_create(db)
        fees = compute_marketplace_fees(item_price, settings)
        return FeePreviewResponse.from_domain(fees, settings.version)
