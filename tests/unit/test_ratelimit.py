"""Tests for the Redis fixed-window rate limiter, against an in-memory fake client."""

import asyncio

import redis.asyncio as redis

from utils.ratelimit import RateLimiter, RateLimitRule

RULE = RateLimitRule(scope="test", max_requests=2, window_seconds=60, message="Slow down")


class FakeRedis:
    def __init__(self):
        self.counts = {}
        self.ttls = {}
        self.closed = False

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    async def ttl(self, key):
        return self.ttls.get(key, -1)

    async def aclose(self):
        self.closed = True


class BrokenRedis:
    async def incr(self, key):
        raise redis.ConnectionError("connection refused")


def test_allows_until_limit_then_blocks():
    client = FakeRedis()
    limiter = RateLimiter(client=client)

    async def scenario():
        return [await limiter.hit(RULE, "10.0.0.1") for _ in range(3)]

    first, second, third = asyncio.run(scenario())
    assert first.allowed and first.remaining == 1
    assert second.allowed and second.remaining == 0
    assert not third.allowed
    assert third.reset_seconds == 60
    assert client.ttls == {"ratelimit:test:10.0.0.1": 60}


def test_clients_counted_separately():
    limiter = RateLimiter(client=FakeRedis())

    async def scenario():
        for _ in range(2):
            await limiter.hit(RULE, "a")
        return await limiter.hit(RULE, "b")

    assert asyncio.run(scenario()).allowed


def test_fails_open_when_redis_is_down():
    limiter = RateLimiter(client=BrokenRedis())
    result = asyncio.run(limiter.hit(RULE, "10.0.0.1"))
    assert result.allowed
    assert result.remaining == RULE.max_requests


def test_close_releases_client():
    client = FakeRedis()
    limiter = RateLimiter(client=client)
    asyncio.run(limiter.close())
    assert client.closed
    assert limiter.client is None
