import json
import logging

import redis.asyncio as redis

from forum.config import settings

logger = logging.getLogger(__name__)

TOPICS_LIST_KEY = "topics:list"

# Session.info key holding cache keys to drop after commit.
PENDING_INVALIDATIONS = "forum.cache.pending"


def posts_list_key(topic_id: int) -> str:
    return f"posts:list:{topic_id}"


class CacheManager:
    """
    Read-through cache for the forum's list endpoints, backed by Redis.

    Only data that is read far more often than written is cached: the
    topic list and the per-topic post list. When Redis is missing or
    misbehaving every read is a miss and every write is skipped, so the
    database stays the source of truth and requests never fail because
    of the cache.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, url: str | None = None) -> None:
        """Open the connection pool. Called from the application lifespan."""
        self._redis = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", url or settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed, running without cache: %s", exc)

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | list | None:
        """Return the cached value for *key*, or None on a miss or error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None
        if data is None:
            self._misses += 1
            return None
        self._hits += 1
        return json.loads(data)

    async def set(self, key: str, value: dict | list, ttl: int | None = None) -> None:
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* (SCAN, never KEYS)."""
        if not self._redis:
            return
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Forum invalidation helpers
    # ------------------------------------------------------------------

    async def invalidate_topics(self) -> None:
        await self.delete_pattern(TOPICS_LIST_KEY)

    async def invalidate_posts(self, topic_id: int | None = None) -> None:
        """
        Drop the cached post list for *topic_id*, or for every topic when
        no id is given (used after reseeding).
        """
        if topic_id is None:
            await self.delete_pattern("posts:list:*")
        else:
            await self.delete_pattern(posts_list_key(topic_id))

    # ------------------------------------------------------------------
    # Invalidation deferred to commit
    # ------------------------------------------------------------------

    def invalidate_posts_on_commit(self, db, topic_id: int) -> None:
        """
        Queue the post list of *topic_id* for invalidation once *db*
        commits. The cached entry stays in place until then.
        """
        db.info.setdefault(PENDING_INVALIDATIONS, set()).add(posts_list_key(topic_id))

    async def apply_pending(self, db) -> None:
        """Invalidate everything queued on *db*. Call after a successful commit."""
        for key in sorted(db.info.pop(PENDING_INVALIDATIONS, ())):
            await self.delete_pattern(key)

    def discard_pending(self, db) -> None:
        db.info.pop(PENDING_INVALIDATIONS, None)

    @property
    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "connected": self._redis is not None,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


cache = CacheManager()
