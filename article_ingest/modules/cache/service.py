import logging
import time
from collections.abc import Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from article_ingest.config.settings import settings
from article_ingest.errors import CacheError
from article_ingest.modules.cache.contracts import CacheContract

logger = logging.getLogger(__name__)

KEY_PREFIX = "article-ingest"


class RedisCache(CacheContract):
    """Cache backed by Redis, shared across worker processes."""

    def __init__(self, url: str, ttl: int, client: aioredis.Redis | None = None) -> None:
        self._url = url
        self._ttl = ttl
        self._redis = client or aioredis.from_url(url, encoding="utf-8", decode_responses=True)

    def _key(self, key: str) -> str:
        return f"{KEY_PREFIX}:{key}"

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(self._key(key))
        except RedisError as exc:
            raise CacheError(f"Cache read failed for {key}: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(self._key(key), value, ex=self._ttl)
        except RedisError as exc:
            raise CacheError(f"Cache write failed for {key}: {exc}") from exc

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis cache connection closed")


class InMemoryCache(CacheContract):
    """Per-process cache for local runs and tests."""

    def __init__(self, ttl: int | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[str, float | None]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: str) -> None:
        expires_at = self._clock() + self._ttl if self._ttl else None
        self._entries[key] = (value, expires_at)

    async def close(self) -> None:
        self._entries.clear()


def build_cache() -> CacheContract:
    if settings.redis_url:
        logger.info("Using Redis cache at %s", settings.redis_url)
        return RedisCache(settings.redis_url, settings.cache_ttl_seconds)
    logger.warning("REDIS_URL not set, using in-memory cache")
    return InMemoryCache(settings.cache_ttl_seconds)


cache_service = build_cache()
