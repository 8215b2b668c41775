"""Redis-backed distributed cache tier for the shortlink service.

This module wraps a shared ``redis.asyncio`` client behind the three cache
operations the resolver and writer need. The cache is non-authoritative:
every Redis failure is logged, counted and turned into a miss (``get``) or a
``False`` return (``set``/``delete``), never raised to the caller.

Flow Diagram — get()
====================
::
    ┌─────────────┐
    │  get(path)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ GET prefix  │
    │ + path      │
    └──────┬──────┘
    ERROR?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Return  │  │ Log and │
│ value   │  │ return  │
│ or None │  │ None    │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Build the client once at startup**::
    client = build_redis(settings)
    cache = DistributedCache(client, key_prefix=settings.DISTRIBUTED_CACHE_KEY_PREFIX)

**Step 2 — Use it**::
    await cache.set("a/b", "https://example.com")
    url = await cache.get("a/b")

**Step 3 — Cleanup on shutdown**::
    await cache.close()

Key Behaviours
===============
- Keys are namespaced with a configurable prefix.
- Entries carry no TTL; they only disappear through invalidation.
- UTF-8 encoding with decode_responses for string operations.

Classes:
    DistributedCache:  Failure-tolerant async cache facade.

Functions:
    build_redis():  Creates the shared Redis client.
"""

import logging

import redis.asyncio as redis
from prometheus_client import Counter
from redis.exceptions import RedisError

from shortlink.config import Settings

__all__ = ["DistributedCache", "build_redis"]

logger = logging.getLogger(__name__)

CACHE_ERRORS_TOTAL = Counter(
    "shortlink_cache_errors_total",
    "Cache tier operations that failed and were ignored",
    ["tier", "operation"],
)

# Connection refusals surface as OSError subclasses on some platforms.
_CACHE_ERRORS = (RedisError, OSError)


def build_redis(settings: Settings) -> redis.Redis:
    return redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
    )


class DistributedCache:
    def __init__(self, client: redis.Redis, key_prefix: str = "url:") -> None:
        self._client = client
        self._key_prefix = key_prefix

    def key(self, path: str) -> str:
        return f"{self._key_prefix}{path}"

    async def get(self, path: str) -> str | None:
        try:
            return await self._client.get(self.key(path))
        except _CACHE_ERRORS as exc:
            self._record_failure("get", path, exc)
            return None

    async def set(self, path: str, url: str) -> bool:
        try:
            await self._client.set(self.key(path), url)
        except _CACHE_ERRORS as exc:
            self._record_failure("set", path, exc)
            return False
        return True

    async def delete(self, path: str) -> bool:
        try:
            await self._client.delete(self.key(path))
        except _CACHE_ERRORS as exc:
            self._record_failure("delete", path, exc)
            return False
        return True

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except _CACHE_ERRORS as exc:
            self._record_failure("ping", None, exc)
            return False

    async def close(self) -> None:
        await self._client.aclose()

    def _record_failure(self, operation: str, path: str | None, exc: BaseException) -> None:
        CACHE_ERRORS_TOTAL.labels(tier="distributed", operation=operation).inc()
        logger.warning(f"Distributed cache {operation} failed for {path!r}: {exc}")
