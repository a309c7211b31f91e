"""
Fixed-window rate limiter backed by Redis.

Each client IP gets RATE_LIMIT_MAX_REQUESTS per RATE_LIMIT_WINDOW_SECONDS.
The counter key embeds the window number so old windows simply expire.

Circuit Breaker Pattern:
  On Redis failure the limiter fails open (allows the request) and flips
  the redis_circuit_breaker_open gauge. A Redis outage degrades abuse
  protection; it never takes the API down with it.
"""

import time
from dataclasses import dataclass
from typing import Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_rate_limit, redis_circuit_breaker_open, redis_connection_errors
from app.services.cache_service import get_redis

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_in: int


class FixedWindowRateLimiter:
    def __init__(self, max_requests: int, window_seconds: int, prefix: str = "ratelimit"):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.prefix = prefix

    def _key(self, identifier: str, now: Optional[float] = None) -> tuple[str, int]:
        now = time.time() if now is None else now
        window = int(now // self.window_seconds)
        reset_in = self.window_seconds - int(now % self.window_seconds)
        return f"{self.prefix}:{identifier}:{window}", reset_in

    async def hit(self, identifier: str) -> RateLimitResult:
        key, reset_in = self._key(identifier)
        client = await get_redis()
        if client is None:
            return RateLimitResult(True, self.max_requests, self.max_requests, reset_in)

        try:
            count = await client.incr(key)
            if count == 1:
                await client.expire(key, self.window_seconds)
            redis_circuit_breaker_open.set(0)
        except Exception as e:
            redis_connection_errors.inc()
            redis_circuit_breaker_open.set(1)
            logger.warning("rate_limit_redis_error", error=str(e))
            return RateLimitResult(True, self.max_requests, self.max_requests, reset_in)

        allowed = count <= self.max_requests
        record_rate_limit(allowed)
        return RateLimitResult(
            allowed=allowed,
            limit=self.max_requests,
            remaining=max(self.max_requests - count, 0),
            reset_in=reset_in,
        )


def get_rate_limiter() -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS)
