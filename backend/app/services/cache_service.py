"""
Redis caching service for the public trip view.

CACHING STRATEGY
================

What we cache:
  - The public trip view (title, dates, price, seats left), JSON-serialized
  - Cache key pattern: "trips:view:{slug}" (slug or public slug as requested)

Invalidation strategy:
  - After every successful booking the keys for the trip's slug and public
    slug are deleted, since seats_left changed
  - TTL-based expiry as safety net (5 minutes)

The booking flow never reads from this cache: the advisory seat check reads
the datastore, and the authoritative check is the atomic reserve statement.
A stale cached view can only show an outdated seats-left figure.

Redis being disabled or unreachable is not an error; every function fails
open and the caller falls back to the datastore.
"""

import json
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

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


def _make_trip_key(slug: str) -> str:
    return f"trips:view:{slug}"


async def get_cached_trip(slug: str) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_trip_key(slug)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=bool(data))
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_trip(slug: str, data: dict) -> None:
    """Cache a trip view with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_trip_key(slug)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_trip_cache(*slugs: Optional[str]) -> None:
    """Drop cached views for every given slug (None entries are skipped)."""
    client = await get_redis()
    if not client:
        return

    keys = [_make_trip_key(slug) for slug in slugs if slug]
    if not keys:
        return
    try:
        deleted = await client.delete(*keys)
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
