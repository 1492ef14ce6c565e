"""
Fixed-window rate limiting backed by Redis.

Counters live in Redis (INCR + EXPIRE on `ratelimit:<scope>:<client>`), so
limits hold across API workers. When Redis is unreachable the limiter logs a
warning and lets the request through.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis

from utils.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRule:
    scope: str
    max_requests: int
    window_seconds: int
    message: str


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


API_RULE = RateLimitRule(
    scope="api",
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    message="Too many requests from this IP, please try again after 15 minutes",
)

AUTH_RULE = RateLimitRule(
    scope="auth",
    max_requests=settings.RATE_LIMIT_AUTH_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    message="Too many authentication attempts, please try again after 15 minutes",
)


class RateLimiter:
    """Redis fixed-window counter with connection pooling."""

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None) -> None:
        """Initialize rate limiter.

        Args:
            redis_url: Redis connection URL, defaults to settings.REDIS_URL
            client: Pre-built client (takes precedence over redis_url)
        """
        self.redis_url = redis_url or settings.REDIS_URL
        self.client = client

    async def connect(self) -> None:
        if self.client is None:
            self.client = redis.from_url(
                self.redis_url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,
            )

    async def hit(self, rule: RateLimitRule, client_id: str) -> RateLimitResult:
        """Count one request for `client_id` under `rule`."""
        if self.client is None:
            await self.connect()

        key = f"ratelimit:{rule.scope}:{client_id}"
        try:
            count = int(await self.client.incr(key))
            if count == 1:
                await self.client.expire(key, rule.window_seconds)
            ttl = int(await self.client.ttl(key))
        except redis.RedisError as e:
            logger.warning("Rate limiter unavailable, allowing request", extra={"error": str(e), "scope": rule.scope})
            return RateLimitResult(True, rule.max_requests, rule.max_requests, rule.window_seconds)

        reset = ttl if ttl > 0 else rule.window_seconds
        remaining = max(0, rule.max_requests - count)
        return RateLimitResult(count <= rule.max_requests, rule.max_requests, remaining, reset)

    async def close(self) -> None:
        """Close Redis connection and cleanup resources."""
        if self.client:
            await self.client.aclose()
            self.client = None
