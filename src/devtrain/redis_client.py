"""Optional Redis connection pool.

Redis backs the shared rate limiter and the readiness probe. When
``DEVTRAIN_REDIS_URL`` is empty the service runs without it.
"""

import redis.asyncio as redis

_pool: redis.Redis | None = None


async def init_redis(url: str) -> redis.Redis:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    return _pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis_optional() -> redis.Redis | None:
    """The Redis client, or None when Redis is not configured."""
    return _pool
