"""Unit tests for the periodic offer-expiry sweeper."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mp_offer.application.sweeper import run_expiry_sweeper


def _session_factory() -> MagicMock:
    session = AsyncMock()
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


async def test_sweeps_repeatedly_until_cancelled():
    service = MagicMock()
    service.expire_offers = AsyncMock(return_value=0)

    task = asyncio.create_task(run_expiry_sweeper(_session_factory(), 0.01, service))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert service.expire_offers.await_count >= 2


async def test_failed_sweep_does_not_stop_loop(caplog):
    calls = 0

    async def flaky(session) -> int:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("db down")
        return 0

    service = MagicMock()
    service.expire_offers = AsyncMock(side_effect=flaky)

    task = asyncio.create_task(run_expiry_sweeper(_session_factory(), 0.01, service))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert service.expire_offers.await_count >= 2
    assert "Offer expiry sweep failed" in caplog.text
