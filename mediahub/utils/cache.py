"""Caches for provider lookups (TMDB genre map, MangaDex statistics).

Two interchangeable backends with the same async interface: an in-process
LRU with TTL, and Redis for deployments running several instances. Values
must be JSON serializable. Cache failures degrade to misses.
"""

import hashlib
import json
import time
from collections import OrderedDict
from datetime import timedelta
from typing import Any, Protocol

import redis.asyncio as redis

from mediahub.constants import MEMORY_CACHE_MAX_SIZE
from mediahub.utils.logging import get_logger

logger = get_logger(__name__)


class ProviderCache(Protocol):
    """Interface the provider clients depend on."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def clear(self, prefix: str = "") -> int: ...


class MemoryCache:
    """In-process LRU cache with per-entry expiry."""

    def __init__(self, ttl: timedelta, max_size: int = MEMORY_CACHE_MAX_SIZE) -> None:
        self.ttl = ttl
        self.max_size = max_size
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> bool:
        expires_at = time.monotonic() + (ttl or self.ttl).total_seconds()
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (value, expires_at)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
        return True

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self, prefix: str = "") -> int:
        keys = [k for k in self._entries if k.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)


class RedisCache:
    """Async Redis cache client with JSON serialization."""

    def __init__(self, url: str, ttl: timedelta) -> None:
        self.url = url
        self.ttl = ttl
        self._client: redis.Redis | None = None

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self.url, encoding="utf-8", decode_responses=True)
        return self._client

    async def ping(self) -> bool:
        """Ping Redis to check connection health."""
        return await self._get_client().ping()

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, key: str) -> Any | None:
        try:
            data = await self._get_client().get(key)
            if data:
                return json.loads(data)
            return None
        except (redis.RedisError, ValueError) as e:
            logger.debug(f"Cache get error for {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: timedelta | None = None) -> bool:
        try:
            serialized = json.dumps(value, default=str)
            expire_seconds = int((ttl or self.ttl).total_seconds())
            await self._get_client().setex(key, expire_seconds, serialized)
            return True
        except (redis.RedisError, TypeError) as e:
            logger.debug(f"Cache set error for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        try:
            await self._get_client().delete(key)
            return True
        except redis.RedisError as e:
            logger.debug(f"Cache delete error for {key}: {e}")
            return False

    async def clear(self, prefix: str = "") -> int:
        """Delete every key starting with ``prefix``."""
        try:
            client = self._get_client()
            keys = [key async for key in client.scan_iter(match=f"{prefix}*")]
            if keys:
                return await client.delete(*keys)
            return 0
        except redis.RedisError as e:
            logger.debug(f"Cache clear error for {prefix}: {e}")
            return 0


def make_cache_key(namespace: str, *parts: Any) -> str:
    """Build a ``namespace:part:part`` key, hashing overly long ones."""
    key_str = ":".join([namespace, *(str(p) for p in parts if p is not None)])
    if len(key_str) > 200:
        hash_suffix = hashlib.md5(key_str.encode()).hexdigest()[:12]
        key_str = f"{namespace}:{hash_suffix}"
    return key_str


_provider_cache: ProviderCache | None = None


def get_provider_cache() -> ProviderCache:
    """Get the process-wide provider cache (Redis when configured)."""
    global _provider_cache
    if _provider_cache is None:
        from mediahub.config import get_settings

        settings = get_settings()
        ttl = timedelta(seconds=settings.provider_cache_ttl_seconds)
        if settings.redis_url:
            _provider_cache = RedisCache(settings.redis_url, ttl)
        else:
            _provider_cache = MemoryCache(ttl)
    return _provider_cache
