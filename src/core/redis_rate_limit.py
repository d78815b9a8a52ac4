"""Redis-backed sliding-window rate limiter.

Each identifier owns one sorted set: member = unique hit id, score = hit
timestamp. Hits older than the window are trimmed before counting, so every
app instance pointed at the same Redis shares one limit.
"""

import time
import uuid
from typing import Optional

import redis.asyncio as redis
import structlog

from src.core.rate_limiter import KEY_PREFIX, RateLimitResult, window_outcome

logger = structlog.get_logger(__name__)


class RedisRateLimiter:
    """
    Rate limiter storing hits in Redis sorted sets.

    Args:
        redis_url: Redis connection URL
        key_prefix: Prefix for bucket keys
    """

    def __init__(self, redis_url: str, key_prefix: str = KEY_PREFIX):
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._client: Optional[redis.Redis] = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Open the connection and verify it with PING."""
        if self._client is not None:
            return

        client = redis.from_url(self._redis_url, encoding="utf-8", decode_responses=True)
        try:
            await client.ping()
        except Exception as e:
            logger.error("redis_rate_limiter_connection_failed", error=str(e))
            await client.aclose()
            raise

        self._client = client
        logger.info("redis_rate_limiter_connected")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("redis_rate_limiter_disconnected")

    def _key(self, identifier: str) -> str:
        return f"{self._key_prefix}:{identifier}"

    def _require_client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Rate limiter not connected. Call connect() first.")
        return self._client

    async def is_allowed(self, identifier: str, limit: int, window: int) -> RateLimitResult:
        """Count hits inside the last ``window`` seconds and record this one if allowed."""
        client = self._require_client()
        key = self._key(identifier)
        now = time.time()

        pipe = client.pipeline()
        pipe.zremrangebyscore(key, 0, now - window)
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        _, current_count, oldest_entry = await pipe.execute()

        oldest = oldest_entry[0][1] if oldest_entry else None
        result = window_outcome(current_count, oldest, limit, window, now)

        if not result.allowed:
            logger.info(
                "rate_limit_exceeded",
                identifier=identifier,
                limit=limit,
                retry_after=result.retry_after,
            )
            return result

        pipe = client.pipeline()
        pipe.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
        pipe.expire(key, window + 60)
        await pipe.execute()

        return result

    async def reset(self, identifier: str) -> None:
        client = self._require_client()
        await client.delete(self._key(identifier))
        logger.info("rate_limit_reset", identifier=identifier)
