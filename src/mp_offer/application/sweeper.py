"""Periodic offer-expiry sweep, started from the app lifespan.

Reads already treat overdue PENDING offers as EXPIRED; the sweep only makes
that durable. It runs the same conditional UPDATE as the admin trigger, so
several app instances sweeping at once is harmless.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.mp_offer.application.service import OfferApplicationService

logger = logging.getLogger(__name__)


async def run_expiry_sweeper(
    session_factory: async_sessionmaker[AsyncSession],
    interval_seconds: float,
    service: OfferApplicationService | None = None,
) -> None:
    """Loop forever; cancel the task to stop. A failed sweep is logged and retried next tick."""
    svc = service or OfferApplicationService()
    logger.info("Offer expiry sweeper started (every %ss)", interval_seconds)
    while True:
        try:
            async with session_factory() as session:
                await svc.expire_offers(session)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Offer expiry sweep failed")
        await asyncio.sleep(interval_seconds)
