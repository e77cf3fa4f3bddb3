"""
Redis cache for viewer-independent reads.

Article, profile and comment projections depend on who is asking, so
they are never cached.  The only shared read is the global tag list,
kept under ``TAGS_KEY`` and dropped whenever an article write links
tags.  Redis is optional: when it is unreachable every read is a miss
and every write is skipped.
"""
import json
import logging
from contextlib import contextmanager

import redis.asyncio as redis
from redis.exceptions import RedisError

from conduit.config import settings

logger = logging.getLogger(__name__)

TAGS_KEY = "conduit:tags"


@contextmanager
def _degrade(op: str, key: str):
    """Log and swallow Redis and (de)serialisation failures."""
    try:
        yield
    except (RedisError, OSError, ValueError, TypeError) as exc:
        logger.debug("Cache %s failed for key=%r: %s", op, key, exc)


class RedisCache:
    def __init__(self, url: str) -> None:
        self.url = url
        self._redis: redis.Redis | None = None

    @property
    def available(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        client = redis.from_url(
            self.url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as exc:
            logger.warning("Redis unreachable at %s, caching disabled: %s", self.url, exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Redis connected: %s", self.url)

    async def disconnect(self) -> None:
        client, self._redis = self._redis, None
        if client is not None:
            await client.aclose()

    async def get(self, key: str):
        """Decoded JSON stored under *key*; None on a miss or when degraded."""
        if not self.available:
            return None
        with _degrade("GET", key):
            raw = await self._redis.get(key)
            return None if raw is None else json.loads(raw)
        return None

    async def set(self, key: str, value, ttl: int | None = None) -> None:
        if not self.available:
            return
        with _degrade("SET", key):
            await self._redis.set(key, json.dumps(value), ex=ttl)

    async def delete(self, key: str) -> None:
        if not self.available:
            return
        with _degrade("DEL", key):
            await self._redis.delete(key)

    async def invalidate_tags(self) -> None:
        await self.delete(TAGS_KEY)


# Shared by every request; connected in the application lifespan.
cache = RedisCache(settings.REDIS_URL)
