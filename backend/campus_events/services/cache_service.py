"""
Redis caching for the public event catalogue.

CACHING STRATEGY
================

What we cache:
  - Approved-event listing responses (paginated, JSON-serialized)
  - Key pattern: "events:list:page={page}&size={size}&upcoming={upcoming}&club={club}"

Invalidation:
  - Any lifecycle transition (an event enters or leaves the approved list)
  - Any registration or cancellation (participant counts change)
  - TTL-based expiry as a safety net (REDIS_CACHE_TTL)

  All listing keys share the "events:list:" prefix, so invalidation is a
  SCAN over that prefix.

Why NOT cache individual events:
  - Students need live participant counts when deciding to register
  - The coordinator reads events with populate_existing anyway; a cached
    copy would only be shown, never trusted
"""

import json
from typing import Optional

from redis.exceptions import RedisError

from campus_events.core.config import get_settings
from campus_events.core.logging import get_logger
from campus_events.core.metrics import record_cache_operation
from campus_events.infrastructure.redis_client import get_redis

logger = get_logger(__name__)

LIST_PREFIX = "events:list:"


def _make_event_list_key(page: int, page_size: int, upcoming_only: bool, club_id: Optional[int]) -> str:
    return f"{LIST_PREFIX}page={page}&size={page_size}&upcoming={upcoming_only}&club={club_id or ''}"


async def get_cached_events(
    page: int, page_size: int, upcoming_only: bool, club_id: Optional[int] = None
) -> Optional[dict]:
    """Retrieve a cached event list response."""
    client = await get_redis()
    if not client:
        return None

    key = _make_event_list_key(page, page_size, upcoming_only, club_id)
    try:
        data = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_events(
    page: int,
    page_size: int,
    upcoming_only: bool,
    data: dict,
    club_id: Optional[int] = None,
) -> None:
    """Cache an event list response with TTL."""
    client = await get_redis()
    if not client:
        return

    ttl = get_settings().REDIS_CACHE_TTL
    key = _make_event_list_key(page, page_size, upcoming_only, club_id)
    try:
        await client.setex(key, ttl, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=ttl)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """Drop every cached event listing."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Redis cache statistics for the health endpoint."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
