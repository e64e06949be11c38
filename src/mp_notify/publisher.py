"""Fire-and-forget event hand-off over Redis streams.

Email/notification delivery and payout execution are external workers that
consume these streams. Publishing happens only after the owning DB transaction
has committed, and a failure here is logged and swallowed: it never changes
the result of the financial transition that triggered it.

Stream entry fields are flat strings:
    event        NotificationEvent value
    payload      JSON object (ids, cents amounts, recipients)
    occurred_at  ISO-8601 UTC
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis

from config.settings import settings
from src.mp_common.datetime_utils import utc_now
from src.mp_common.enums import NotificationEvent
from src.mp_common.redis_client import get_redis

logger = logging.getLogger(__name__)

RedisFactory = Callable[[], Awaitable[aioredis.Redis]]


class EventPublisher:
    def __init__(self, redis_factory: RedisFactory | None = None) -> None:
        self._redis_factory: RedisFactory = redis_factory or get_redis

    async def notify(self, event: NotificationEvent, payload: dict[str, Any]) -> bool:
        """Queue a user-facing notification. Returns False if the hand-off failed."""
        return await self._publish(settings.NOTIFICATION_STREAM, event, payload)

    async def schedule_payout(self, payload: dict[str, Any]) -> bool:
        """Queue a seller payout for the payout worker (release time is in the payload)."""
        return await self._publish(
            settings.PAYOUT_STREAM, NotificationEvent.PAYOUT_SCHEDULED, payload
        )

    async def _publish(
        self, stream: str, event: NotificationEvent, payload: dict[str, Any]
    ) -> bool:
        fields = {
            "event": event.value,
            "payload": json.dumps(payload, default=str),
            "occurred_at": utc_now().isoformat(),
        }
        try:
            redis = await self._redis_factory()
            await redis.xadd(stream, fields)
        except Exception:
            logger.warning(
                "Event hand-off failed: stream=%s event=%s", stream, event.value, exc_info=True
            )
            return False
        return True
