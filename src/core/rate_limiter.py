"""Sliding-window rate limiters.

Two backends share one interface: ``RedisRateLimiter`` (shared across app
instances, see ``src.core.redis_rate_limit``) and ``InMemoryRateLimiter``
(single process). ``get_rate_limiter`` picks Redis when ``redis_url`` is set
and reachable, and falls back to memory otherwise.

Usage:
    limiter = await get_rate_limiter(settings)
    result = await limiter.is_allowed("user:42", limit=100, window=3600)
    if not result.allowed:
        ...
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import structlog

from src.config.settings import Settings

logger = structlog.get_logger(__name__)

KEY_PREFIX = "rivalmap:ratelimit"


@dataclass
class RateLimitResult:
    """Outcome of one rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: Optional[float] = None

    def headers(self) -> dict[str, str]:
        """``X-RateLimit-*`` headers (plus ``Retry-After`` when refused)."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(max(1, int(self.retry_after or 0)))
        return headers


class RateLimiter(Protocol):
    """Protocol for rate limiter backends."""

    async def is_allowed(self, identifier: str, limit: int, window: int) -> RateLimitResult: ...

    async def reset(self, identifier: str) -> None: ...

    async def close(self) -> None: ...


def window_outcome(
    current_count: int,
    oldest: Optional[float],
    limit: int,
    window: int,
    now: float,
) -> RateLimitResult:
    """
    Decide a check from the number of hits already inside the window.

    ``oldest`` is the timestamp of the earliest hit still counted; the window
    frees a slot when that hit ages out.
    """
    reset_at = (oldest + window) if oldest is not None else now + window

    if current_count >= limit:
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_at=reset_at,
            retry_after=reset_at - now,
        )

    return RateLimitResult(
        allowed=True,
        limit=limit,
        remaining=limit - current_count - 1,
        reset_at=reset_at,
    )


@dataclass
class InMemoryRateLimiter:
    """
    Process-local limiter for development or when Redis is unavailable.

    WARNING: State is lost on restart and not shared between instances.
    """

    _hits: dict[str, list[float]] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def is_allowed(self, identifier: str, limit: int, window: int) -> RateLimitResult:
        async with self._lock:
            now = time.time()
            hits = [t for t in self._hits.get(identifier, []) if t > now - window]

            result = window_outcome(len(hits), min(hits, default=None), limit, window, now)
            if result.allowed:
                hits.append(now)
            self._hits[identifier] = hits
            return result

    async def reset(self, identifier: str) -> None:
        async with self._lock:
            self._hits.pop(identifier, None)

    async def close(self) -> None:
        self._hits.clear()


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


async def get_rate_limiter(settings: Optional[Settings] = None) -> RateLimiter:
    """
    Get or create the process-wide rate limiter.

    Args:
        settings: Application settings (uses get_settings() if not provided)

    Returns:
        Redis-backed limiter when configured and reachable, else in-memory.
    """
    global _rate_limiter

    if _rate_limiter is not None:
        return _rate_limiter

    if settings is None:
        from src.config.settings import get_settings
        settings = get_settings()

    if settings.redis_url:
        from src.core.redis_rate_limit import RedisRateLimiter

        redis_limiter = RedisRateLimiter(redis_url=settings.redis_url, key_prefix=KEY_PREFIX)
        try:
            await redis_limiter.connect()
        except Exception as e:
            logger.warning("redis_rate_limiter_failed_fallback_to_memory", error=str(e))
        else:
            _rate_limiter = redis_limiter
            logger.info("rate_limiter_initialized", backend="redis")
            return _rate_limiter

    _rate_limiter = InMemoryRateLimiter()
    logger.info("rate_limiter_initialized", backend="in_memory")
    return _rate_limiter


async def reset_rate_limiter() -> None:
    """Close and forget the global limiter (shutdown and tests)."""
    global _rate_limiter
    limiter, _rate_limiter = _rate_limiter, None
    if limiter is not None:
        await limiter.close()
