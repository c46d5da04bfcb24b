"""Template byte stores.

Templates are keyed by their URL and stored without expiry: a template
published at a URL is assumed immutable for the lifetime of the process
(in-memory store) or of the Redis instance (shared store).

Two implementations share the ``TemplateStore`` protocol:

- ``InMemoryTemplateStore``: per-worker, bounded by entry count (LRU).
  Suitable for single-instance deployments and tests.
- ``RedisTemplateStore``: shared across workers/replicas.

Concurrent writers for the same URL all write identical bytes, so
last-writer-wins is acceptable and no extra locking is done.
"""

from typing import Protocol

import redis.asyncio as redis
from cachetools import LRUCache

from core.config import Settings
from core.errors import CacheError

# Redis key namespace for template blobs
_REDIS_KEY_PREFIX = "certificate-template:"


class TemplateStore(Protocol):
    async def get(self, key: str) -> bytes | None: ...

    async def set_without_expiry(self, key: str, value: bytes) -> None: ...

    async def close(self) -> None: ...


class InMemoryTemplateStore:
    """LRU-bounded in-process store. No TTL."""

    def __init__(self, max_entries: int = 256):
        self._cache: LRUCache[str, bytes] = LRUCache(maxsize=max_entries)

    async def get(self, key: str) -> bytes | None:
        return self._cache.get(key)

    async def set_without_expiry(self, key: str, value: bytes) -> None:
        self._cache[key] = value

    async def close(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)


class RedisTemplateStore:
    """Redis-backed store; keys never expire."""

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisTemplateStore":
        # Template blobs are binary, so responses must not be decoded
        return cls(redis.from_url(url, decode_responses=False))

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._client.get(_REDIS_KEY_PREFIX + key)
        except redis.RedisError as e:
            raise CacheError(f"Error reading template {key} from cache: {e}") from e

    async def set_without_expiry(self, key: str, value: bytes) -> None:
        try:
            await self._client.set(_REDIS_KEY_PREFIX + key, value)
        except redis.RedisError as e:
            raise CacheError(f"Error saving template {key} to cache: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()


def create_template_store(settings: Settings) -> TemplateStore:
    """Build the store selected by TEMPLATE_CACHE_URL."""
    if settings.use_redis_cache:
        return RedisTemplateStore.from_url(settings.template_cache_url)
    return InMemoryTemplateStore(max_entries=settings.template_cache_max_entries)
