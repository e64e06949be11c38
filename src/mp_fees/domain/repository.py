# src/mp_fees/domain/repository.py
"""SettingsRepository Protocol - interface contract for persistence layer."""
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_fees.domain.models import PlatformSettings


class SettingsRepositoryProtocol(Protocol):
    async def get_or_create(self, db: AsyncSession) -> PlatformSettings: ...

    async def update(self, db: AsyncSession, changes: dict[str, Any]) -> PlatformSettings: ...
