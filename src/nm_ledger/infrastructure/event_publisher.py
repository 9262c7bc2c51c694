"""Forward committed ledger events to Redis pub/sub as JSON.

Publishing happens after the journal commit; a Redis outage loses the
notification, never the ledger change. Indexers that miss events re-read
state through the query endpoints.
"""

import json
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.nm_common.redis_client import get_redis
from src.nm_ledger.domain.events import LedgerEvent

logger = logging.getLogger(__name__)


class RedisEventPublisher:
    def __init__(
        self,
        channel: str | None = None,
        enabled: bool | None = None,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
    ) -> None:
        self._channel = channel or settings.EVENTS_CHANNEL
        self._enabled = settings.PUBLISH_EVENTS if enabled is None else enabled
        self._redis_factory = redis_factory

    async def publish(self, event: LedgerEvent) -> None:
        if not self._enabled:
            return
        message = json.dumps(event.to_payload())
        try:
            redis = await self._redis_factory()
            await redis.publish(self._channel, message)
        except (RedisError, OSError) as exc:
            logger.warning("Dropped %s event (redis unavailable): %s", event.name, exc)
