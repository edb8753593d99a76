"""Unit tests for the per-user generation rate limiter."""

from __future__ import annotations

import pytest

from devtrain.errors import RateLimitExceededError
from devtrain.ratelimit import InMemoryRateLimiter, RedisRateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    """Buffers commands and applies them in order on execute(), like a MULTI/EXEC pipeline."""

    def __init__(self, redis: FakeRedis) -> None:
        self.redis = redis
        self.commands: list[tuple[str, tuple]] = []

    def incr(self, key: str) -> FakePipeline:
        self.commands.append(("incr", (key,)))
        return self

    def expire(self, key: str, seconds: int, nx: bool = False) -> FakePipeline:
        self.commands.append(("expire", (key, seconds, nx)))
        return self

    def ttl(self, key: str) -> FakePipeline:
        self.commands.append(("ttl", (key,)))
        return self

    async def execute(self) -> list:
        self.redis.round_trips += 1
        return [getattr(self.redis, f"_{name}")(*args) for name, args in self.commands]


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the limiter: a pipeline of INCR, EXPIRE, TTL."""

    def __init__(self) -> None:
        self.values: dict[str, int] = {}
        self.ttls: dict[str, int] = {}
        self.round_trips = 0

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self)

    def _incr(self, key: str) -> int:
        self.values[key] = self.values.get(key, 0) + 1
        return self.values[key]

    def _expire(self, key: str, seconds: int, nx: bool) -> bool:
        if nx and key in self.ttls:
            return False
        self.ttls[key] = seconds
        return True

    def _ttl(self, key: str) -> int:
        return self.ttls.get(key, -1)


class TestInMemoryRateLimiter:
    async def test_counts_within_window(self):
        limiter = InMemoryRateLimiter(limit=5, window_seconds=3600, clock=FakeClock())
        counts = [await limiter.check("user-1") for _ in range(5)]
        assert counts == [1, 2, 3, 4, 5]

    async def test_sixth_call_rejected_with_retry_after(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(limit=5, window_seconds=3600, clock=clock)
        for _ in range(5):
            await limiter.check("user-1")

        clock.advance(600.4)
        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.check("user-1")

        assert exc_info.value.retry_after == 3000  # ceil(2999.6)
        assert exc_info.value.status_code == 429
        assert "3000 seconds" in exc_info.value.message

    async def test_retry_after_is_at_least_one_second(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(limit=1, window_seconds=10, clock=clock)
        await limiter.check("user-1")
        clock.advance(9.9999)
        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.check("user-1")
        assert exc_info.value.retry_after == 1

    async def test_window_resets_after_expiry(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(limit=2, window_seconds=60, clock=clock)
        await limiter.check("user-1")
        await limiter.check("user-1")
        with pytest.raises(RateLimitExceededError):
            await limiter.check("user-1")

        clock.advance(60)
        assert await limiter.check("user-1") == 1

    async def test_rejected_calls_do_not_extend_window(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(limit=1, window_seconds=60, clock=clock)
        await limiter.check("user-1")
        for _ in range(3):
            clock.advance(10)
            with pytest.raises(RateLimitExceededError):
                await limiter.check("user-1")
        clock.advance(30)
        assert await limiter.check("user-1") == 1

    async def test_users_are_independent(self):
        limiter = InMemoryRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
        await limiter.check("user-1")
        assert await limiter.check("user-2") == 1

    async def test_sweep_removes_only_expired_windows(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(limit=5, window_seconds=60, clock=clock)
        await limiter.check("old")
        clock.advance(30)
        await limiter.check("fresh")
        clock.advance(30)

        assert await limiter.sweep() == 1
        assert len(limiter) == 1
        assert await limiter.check("fresh") == 2


class TestRedisRateLimiter:
    async def test_sets_expiry_on_first_hit_only(self):
        redis = FakeRedis()
        limiter = RedisRateLimiter(redis, limit=5, window_seconds=3600)
        await limiter.check("user-1")
        redis.ttls["ratelimit:generate:user-1"] = 1234
        await limiter.check("user-1")
        assert redis.ttls["ratelimit:generate:user-1"] == 1234

    async def test_one_round_trip_per_check(self):
        redis = FakeRedis()
        limiter = RedisRateLimiter(redis, limit=5, window_seconds=3600)
        assert await limiter.check("user-1") == 1
        assert await limiter.check("user-1") == 2
        assert redis.round_trips == 2

    async def test_over_limit_uses_ttl_as_retry_after(self):
        redis = FakeRedis()
        limiter = RedisRateLimiter(redis, limit=2, window_seconds=3600)
        await limiter.check("user-1")
        await limiter.check("user-1")
        redis.ttls["ratelimit:generate:user-1"] = 42

        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.check("user-1")
        assert exc_info.value.retry_after == 42

    async def test_missing_ttl_is_repaired(self):
        redis = FakeRedis()
        limiter = RedisRateLimiter(redis, limit=1, window_seconds=3600)
        redis.values["ratelimit:generate:user-1"] = 1

        with pytest.raises(RateLimitExceededError) as exc_info:
            await limiter.check("user-1")
        assert exc_info.value.retry_after == 3600
        assert redis.ttls["ratelimit:generate:user-1"] == 3600

    async def test_sweep_is_a_noop(self):
        limiter = RedisRateLimiter(FakeRedis(), limit=1, window_seconds=60)
        assert await limiter.sweep() == 0
