"""
Tests for the Redis fixed-window rate limiter and its middleware.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.api.middleware import RateLimitMiddleware
from app.core import rate_limit
from app.core.config import get_settings
from app.core.rate_limit import FixedWindowRateLimiter


class InMemoryRedis:
    def __init__(self):
        self.counters: dict[str, int] = {}
        self.ttls: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    async def expire(self, key: str, seconds: int) -> None:
        self.ttls[key] = seconds


class BrokenRedis:
    async def incr(self, key: str) -> int:
        raise ConnectionError("Connection refused")


def use_redis(monkeypatch, client) -> None:
    async def fake_get_redis():
        return client

    monkeypatch.setattr(rate_limit, "get_redis", fake_get_redis)


@pytest.mark.asyncio
async def test_limiter_counts_per_window(monkeypatch):
    redis = InMemoryRedis()
    use_redis(monkeypatch, redis)
    limiter = FixedWindowRateLimiter(max_requests=2, window_seconds=60)

    first = await limiter.hit("10.0.0.1")
    second = await limiter.hit("10.0.0.1")
    third = await limiter.hit("10.0.0.1")

    assert (first.allowed, first.remaining) == (True, 1)
    assert (second.allowed, second.remaining) == (True, 0)
    assert third.allowed is False
    assert 0 < third.reset_in <= 60
    # TTL is only set when the window's counter is created
    assert list(redis.ttls.values()) == [60]


@pytest.mark.asyncio
async def test_limiter_isolates_clients(monkeypatch):
    use_redis(monkeypatch, InMemoryRedis())
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)

    assert (await limiter.hit("10.0.0.1")).allowed is True
    assert (await limiter.hit("10.0.0.2")).allowed is True
    assert (await limiter.hit("10.0.0.1")).allowed is False


def test_window_key_rolls_over():
    limiter = FixedWindowRateLimiter(max_requests=5, window_seconds=60)
    key_a, reset_a = limiter._key("ip", now=120.0)
    key_b, _ = limiter._key("ip", now=179.0)
    key_c, _ = limiter._key("ip", now=180.0)

    assert key_a == key_b == "ratelimit:ip:2"
    assert key_c == "ratelimit:ip:3"
    assert reset_a == 60


@pytest.mark.asyncio
async def test_limiter_fails_open_without_redis(monkeypatch):
    use_redis(monkeypatch, None)
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)

    for _ in range(3):
        assert (await limiter.hit("10.0.0.1")).allowed is True


@pytest.mark.asyncio
async def test_limiter_fails_open_on_redis_error(monkeypatch):
    use_redis(monkeypatch, BrokenRedis())
    limiter = FixedWindowRateLimiter(max_requests=1, window_seconds=60)

    result = await limiter.hit("10.0.0.1")
    assert result.allowed is True
    assert result.remaining == 1


def build_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limiter=FixedWindowRateLimiter(max_requests=2, window_seconds=60))

    @app.get("/api/v1/ping")
    async def ping():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


@pytest.mark.asyncio
async def test_middleware_rejects_after_limit(monkeypatch):
    use_redis(monkeypatch, InMemoryRedis())
    monkeypatch.setattr(get_settings(), "RATE_LIMIT_ENABLED", True)

    async with AsyncClient(transport=ASGITransport(app=build_app()), base_url="http://test") as client:
        first = await client.get("/api/v1/ping")
        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        await client.get("/api/v1/ping")

        response = await client.get("/api/v1/ping")
        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(response.headers["Retry-After"]) > 0

        # Probes are never throttled
        assert (await client.get("/health")).status_code == 200


@pytest.mark.asyncio
async def test_middleware_disabled(monkeypatch):
    use_redis(monkeypatch, InMemoryRedis())
    monkeypatch.setattr(get_settings(), "RATE_LIMIT_ENABLED", False)

    async with AsyncClient(transport=ASGITransport(app=build_app()), base_url="http://test") as client:
        for _ in range(5):
            response = await client.get("/api/v1/ping")
            assert response.status_code == 200
        assert "X-RateLimit-Limit" not in response.headers
