"""
Redis caching service for public listings.

CACHING STRATEGY
================

What we cache:
  - Performer search responses (filters + page, JSON-serialized)
    key: "performers:search:<sorted query string>"
  - Category listing responses
    key: "categories:list:page={page}&limit={limit}"

Why:
  - Search and browse pages are the most frequent anonymous reads
  - The data changes only when a performer edits their profile or a
    review moves their rating

Invalidation strategy:
  - Performer create/update and new reviews delete every "performers:search:*"
    and "categories:list:*" key (performer_count and ratings change)
  - TTL-based expiry as safety net (REDIS_CACHE_TTL)

  Keys are deleted by prefix with SCAN; the keyspace is small enough that
  this stays cheap.

Cache failures never fail a request: errors are logged and the caller
falls through to the database.
"""

import json
from typing import Any, Optional
from urllib.parse import urlencode

import redis.asyncio as redis

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation, redis_connection_errors

logger = get_logger(__name__)
settings = get_settings()

PERFORMER_SEARCH_PREFIX = "performers:search:"
CATEGORY_LIST_PREFIX = "categories:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            redis_connection_errors.inc()
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_performer_search_key(filters: dict[str, Any]) -> str:
    params = sorted((k, v) for k, v in filters.items() if v is not None)
    return PERFORMER_SEARCH_PREFIX + urlencode(params)


def make_category_list_key(page: int, limit: int) -> str:
    return f"{CATEGORY_LIST_PREFIX}page={page}&limit={limit}"


async def get_cached(key: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", hit=True)
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        record_cache_operation("get", hit=False)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached(key: str, data: dict, ttl: Optional[int] = None) -> None:
    client = await get_redis()
    if not client:
        return

    ttl = ttl or settings.REDIS_CACHE_TTL
    try:
        await client.setex(key, ttl, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=ttl)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_prefix(prefix: str) -> int:
    client = await get_redis()
    if not client:
        return 0

    deleted = 0
    try:
        async for key in client.scan_iter(match=f"{prefix}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", prefix=prefix, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", prefix=prefix, error=str(e))
    return deleted


async def invalidate_performer_cache() -> None:
    """Drop performer search and category listings after a profile or rating change."""
    await invalidate_prefix(PERFORMER_SEARCH_PREFIX)
    await invalidate_prefix(CATEGORY_LIST_PREFIX)


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        keyspace = await client.info("keyspace")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
            "keys": keyspace,
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
