import json
import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Read-view partitions
# ---------------------------------------------------------------------------
# Each partition is an independently cached result set.  Every committed
# post mutation drops all of them (plus every single-post entry).

RECENT_VIEW = "posts:recent"
LIST_VIEW = "posts:list"
MANAGEMENT_VIEW = "posts:manage"
DETAIL_VIEW = "posts:detail"

POST_VIEW_PARTITIONS: tuple[str, ...] = (RECENT_VIEW, LIST_VIEW, MANAGEMENT_VIEW)

# SCAN patterns covering every post read view, single posts included.
_POST_VIEW_PATTERNS: tuple[str, ...] = tuple(f"{p}*" for p in POST_VIEW_PARTITIONS) + (
    f"{DETAIL_VIEW}:*",
)


class CacheManager:
    """
    JSON view cache for the post read paths.

    Without a reachable Redis every read is a miss and every write or
    invalidation is a no-op; callers never see a cache error.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        """Open the pool and verify it with PING; stay disabled if that fails."""
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except RedisError as exc:
            logger.warning("Redis unreachable at %s, post views uncached: %s", settings.REDIS_URL, exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Post view cache connected: %s", settings.REDIS_URL)

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> dict | list | None:
        """Return the decoded view stored under *key*, or None."""
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except RedisError as exc:
            logger.debug("View cache read failed for %r: %s", key, exc)
            return None
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except RedisError as exc:
            logger.debug("View cache write failed for %r: %s", key, exc)

    async def invalidate_posts(self) -> int:
        """
        Drop every post read view and return how many entries went.

        The recent, full-list and management partitions go together with
        every single-post entry: a detail may be cached under either the
        slug or the identifier, so it cannot be targeted by id alone.
        Keys are collected with SCAN and removed in one DELETE.
        """
        if self._redis is None:
            return 0
        try:
            keys = [
                key
                for pattern in _POST_VIEW_PATTERNS
                async for key in self._redis.scan_iter(match=pattern)
            ]
            if keys:
                await self._redis.delete(*keys)
        except RedisError as exc:
            logger.warning("Post view invalidation failed, stale views expire by TTL: %s", exc)
            return 0
        logger.info("Post views invalidated (%d entries)", len(keys))
        return len(keys)


# Module-level singleton shared across all request handlers.
cache = CacheManager()
