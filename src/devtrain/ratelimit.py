"""Per-user fixed-window rate limiting for AI topic generation.

Each user gets a window that opens on their first request and closes
``window_seconds`` later. Two backends share the same ``check`` contract:

* ``InMemoryRateLimiter`` keeps windows in a process-local dict. It is only
  touched from the event loop so it needs no locking.
* ``RedisRateLimiter`` keeps one expiring counter per user in Redis so the
  limit holds across worker processes.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from devtrain.errors import RateLimitExceededError

if TYPE_CHECKING:
    import redis.asyncio as aioredis

    from devtrain.config import Settings

logger = structlog.get_logger()

REDIS_KEY = "ratelimit:generate:{key}"


def _exceeded(retry_after: int) -> RateLimitExceededError:
    retry_after = max(1, retry_after)
    return RateLimitExceededError(
        retry_after=retry_after,
        message=f"AI generation rate limit exceeded. Please try again in {retry_after} seconds.",
    )


class RateLimiter(Protocol):
    """Common interface of both backends."""

    async def check(self, key: str) -> int: ...

    async def sweep(self) -> int: ...


@dataclass
class RateLimitWindow:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Process-local limiter: ``limit`` hits per ``window_seconds`` for each key."""

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}

    async def check(self, key: str) -> int:
        """Record a hit for ``key`` and return the count in the current window.

        Raises:
            RateLimitExceededError: If ``key`` already used its ``limit`` hits.
        """
        now = self._clock()
        window = self._windows.get(key)

        if window is None or now >= window.reset_at:
            self._windows[key] = RateLimitWindow(count=1, reset_at=now + self.window_seconds)
            return 1

        if window.count >= self.limit:
            logger.info("rate_limit_exceeded", key=key, backend="memory")
            raise _exceeded(math.ceil(window.reset_at - now))

        window.count += 1
        return window.count

    async def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


class RedisRateLimiter:
    """Shared limiter backed by one expiring Redis counter per key."""

    def __init__(self, redis: aioredis.Redis, limit: int, window_seconds: int) -> None:
        self.redis = redis
        self.limit = limit
        self.window_seconds = window_seconds

    async def check(self, key: str) -> int:
        redis_key = REDIS_KEY.format(key=key)
        pipe = self.redis.pipeline()
        pipe.incr(redis_key)
        # NX: only the first hit of a window starts the clock (Redis 7+).
        pipe.expire(redis_key, self.window_seconds, nx=True)
        pipe.ttl(redis_key)
        results: list[Any] = await pipe.execute()
        count, ttl = int(results[0]), int(results[2])

        if count > self.limit:
            logger.info("rate_limit_exceeded", key=key, backend="redis")
            raise _exceeded(ttl if ttl > 0 else self.window_seconds)

        return count

    async def sweep(self) -> int:
        # Redis evicts expired counters itself.
        return 0


# ---------------------------------------------------------------------------
# Process-wide limiter
# ---------------------------------------------------------------------------

_limiter: RateLimiter | None = None


def init_rate_limiter(settings: Settings, redis: aioredis.Redis | None = None) -> RateLimiter:
    """Create the generation limiter for the configured backend."""
    global _limiter  # noqa: PLW0603
    if settings.rate_limit_backend == "redis":
        if redis is None:
            msg = "rate_limit_backend=redis requires DEVTRAIN_REDIS_URL"
            raise RuntimeError(msg)
        _limiter = RedisRateLimiter(
            redis,
            limit=settings.ai_rate_limit_per_hour,
            window_seconds=settings.ai_rate_limit_window_seconds,
        )
    else:
        _limiter = InMemoryRateLimiter(
            limit=settings.ai_rate_limit_per_hour,
            window_seconds=settings.ai_rate_limit_window_seconds,
        )
    logger.info("rate_limiter_initialized", backend=settings.rate_limit_backend)
    return _limiter


def reset_rate_limiter() -> None:
    global _limiter  # noqa: PLW0603
    _limiter = None


def get_rate_limiter() -> RateLimiter:
    """Get the generation limiter (FastAPI dependency)."""
    if _limiter is None:
        msg = "Rate limiter not initialized. Call init_rate_limiter() first."
        raise RuntimeError(msg)
    return _limiter


async def sweep_forever(limiter: RateLimiter, interval_seconds: float) -> None:
    """Periodically drop expired windows until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await limiter.sweep()
        except Exception:
            logger.warning("rate_limit_sweep_failed", exc_info=True)
            continue
        if removed:
            logger.debug("rate_limit_windows_swept", removed=removed)
