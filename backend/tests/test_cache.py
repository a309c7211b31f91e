"""
Tests for the Redis cache helpers used by search and category listings.
"""

import fnmatch

import pytest

from app.services import cache_service
from app.services.cache_service import (
    get_cached,
    invalidate_performer_cache,
    make_category_list_key,
    make_performer_search_key,
    set_cached,
)


class InMemoryRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, key):
        self.store.pop(key, None)

    async def scan_iter(self, match, count=None):
        for key in list(self.store):
            if fnmatch.fnmatch(key, match):
                yield key


@pytest.fixture
def redis_store(monkeypatch) -> InMemoryRedis:
    store = InMemoryRedis()

    async def fake_get_redis():
        return store

    monkeypatch.setattr(cache_service, "get_redis", fake_get_redis)
    return store


def test_search_key_is_order_independent():
    a = make_performer_search_key({"location": "London", "page": 1, "category": None, "sort_by": "rating"})
    b = make_performer_search_key({"sort_by": "rating", "page": 1, "location": "London"})
    assert a == b == "performers:search:location=London&page=1&sort_by=rating"


@pytest.mark.asyncio
async def test_round_trip_with_ttl(redis_store):
    await set_cached("categories:list:page=1&limit=20", {"categories": [{"id": 1}]}, ttl=30)

    assert await get_cached("categories:list:page=1&limit=20") == {"categories": [{"id": 1}]}
    assert redis_store.ttls["categories:list:page=1&limit=20"] == 30
    assert await get_cached("categories:list:page=2&limit=20") is None


@pytest.mark.asyncio
async def test_invalidate_performer_cache(redis_store):
    await set_cached(make_performer_search_key({"page": 1}), {"performers": []})
    await set_cached(make_category_list_key(1, 20), {"categories": []})
    await set_cached("session:abc", {"user": 1})

    await invalidate_performer_cache()

    assert list(redis_store.store) == ["session:abc"]


@pytest.mark.asyncio
async def test_disabled_cache_is_a_no_op():
    # REDIS_ENABLED is false under test
    await set_cached("performers:search:page=1", {"performers": []})
    assert await get_cached("performers:search:page=1") is None
    assert await cache_service.invalidate_prefix("performers:search:") == 0
