"""Mapping Writer - creation, update and short ID generation.

This module turns mapping requests into store writes. A request either names
an explicit path (create or update), or carries only a URL, in which case a
short ID is derived from the URL's hash. Every request yields a tagged
``WriteResult``; nothing is raised to the caller for bad input or store
conflicts.

Write Flow
==========
::
    ┌──────────────────┐
    │ normalize path   │
    │ and url          │
    └────────┬─────────┘
             ▼
           path?
    ┌────────┴──────────────────────┬──────────────────────┐
    │ YES                           │ NO, url              │ NO, no url
    ▼                               ▼                      ▼
┌──────────────┐            ┌──────────────────┐   ┌─────────────┐
│ find by path │            │ long id = b64url │   │  REJECTED   │
└──────┬───────┘            │ (sha256(url))    │   └─────────────┘
  FOUND?                    └────────┬─────────┘
 ┌─────┴──────┐                      ▼
 │ YES        │ NO          ┌──────────────────┐
 ▼            ▼             │ prefix scan for  │
UPDATED      has '/'?       │ long_id[:k]      │
             ┌──┴───┐       └────────┬─────────┘
             │ YES  │ NO             ▼
             ▼      ▼       ┌──────────────────┐
         CREATED REJECTED   │ grow to longest  │
                            │ collision; reuse │
                            │ same-url record  │
                            └────────┬─────────┘
                                     ▼
                             REUSED or CREATED

    Every result except REJECTED then runs:
    ┌────────────────────┐
    │ bump generation,   │
    │ drop local entry;  │
    │ background: redis, │
    │ then local         │
    └────────────────────┘

Short ID Collisions
===================
The candidate short ID starts as the first ``MIN_SHORT_ID_LENGTH``
characters of the long ID. When records already use that prefix, the
candidate grows to the length of the longest of them; a record for the same
URL is reused instead of writing a new one. If the grown candidate is still
held by a different URL, it grows one character at a time until it is free.
Short IDs therefore stay minimal until a real collision is observed.

Concurrent creations for the same URL may both miss each other's record; the
unique constraint on ``short_id``/``path`` decides, and the loser is reported
as a rejected item.

Usage Examples
==============
```python
writer = MappingWriter(store, local_cache, distributed_cache, maintainer, generations, min_short_id_length=6)
results = await writer.write([MappingRequest(url="https://example.com")])
print(results[0].path)
```
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from prometheus_client import Counter

from shortlink.background import CacheMaintainer
from shortlink.distributed_cache import DistributedCache
from shortlink.enums import WriteOutcome
from shortlink.exceptions import MappingValidationError, StoreConflictError, StoreError
from shortlink.generations import PathGenerations
from shortlink.hashing import long_id
from shortlink.local_cache import LocalCache
from shortlink.models import UrlMapping
from shortlink.schemas import MappingRequest, MappingResult
from shortlink.store import MappingStore

__all__ = ["MappingWriter", "WriteResult", "normalize_path", "normalize_url"]

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"
STORE_ERROR_MESSAGE = "store error"

WRITE_REQUESTS_TOTAL = Counter(
    "shortlink_write_requests_total",
    "Mapping write requests by outcome",
    ["outcome"],
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass
class WriteResult:
    """Outcome of writing a single mapping request."""

    outcome: WriteOutcome
    path: str | None
    url: str | None
    error: str | None = None
    mapping: UrlMapping | None = None

    @classmethod
    def created(cls, mapping: UrlMapping) -> "WriteResult":
        return cls(WriteOutcome.CREATED, mapping.path, mapping.url, mapping=mapping)

    @classmethod
    def updated(cls, mapping: UrlMapping) -> "WriteResult":
        return cls(WriteOutcome.UPDATED, mapping.path, mapping.url, mapping=mapping)

    @classmethod
    def reused(cls, mapping: UrlMapping) -> "WriteResult":
        return cls(WriteOutcome.REUSED, mapping.path, mapping.url, mapping=mapping)

    @classmethod
    def rejected(cls, path: str | None, url: str | None, error: str) -> "WriteResult":
        return cls(WriteOutcome.REJECTED, path, url, error=error)

    @property
    def ok(self) -> bool:
        return self.outcome is not WriteOutcome.REJECTED

    def to_schema(self) -> MappingResult:
        return MappingResult(path=self.path, url=self.url, error=self.error)


def normalize_path(path: str | None) -> str | None:
    if path is None:
        return None
    path = path.strip().removeprefix("/").strip()
    return path or None


def normalize_url(url: str | None) -> str | None:
    if url is None:
        return None
    return url.strip() or None


# ============================================================================
# CORE SERVICE CLASS
# ============================================================================


class MappingWriter:
    """Creates and updates mappings and keeps the cache tiers coherent.

    Store writes always complete before any invalidation is issued, and
    nothing is invalidated for a rejected request.
    """

    def __init__(
        self,
        store: MappingStore,
        local_cache: LocalCache,
        distributed_cache: DistributedCache,
        maintainer: CacheMaintainer,
        generations: PathGenerations,
        min_short_id_length: int,
    ) -> None:
        if min_short_id_length < 1:
            raise ValueError("min_short_id_length must be positive")
        self._store = store
        self._local = local_cache
        self._distributed = distributed_cache
        self._maintainer = maintainer
        self._generations = generations
        self._min_short_id_length = min_short_id_length

    async def write(self, requests: Sequence[MappingRequest]) -> list[WriteResult]:
        """Write a batch of requests concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.write_one(request) for request in requests)))

    async def write_one(self, request: MappingRequest) -> WriteResult:
        path = normalize_path(request.path)
        url = normalize_url(request.url)

        try:
            if path:
                result = await self._write_explicit(path, url)
            elif url:
                result = await self._write_short(url)
            else:
                raise MappingValidationError("both path and url are empty")
        except MappingValidationError as exc:
            logger.info(f"Mapping rejected for path={path!r}: {exc}")
            result = WriteResult.rejected(path, url, str(exc))
        except StoreConflictError as exc:
            logger.warning(f"Mapping conflict for path={exc.path!r}: {exc}")
            result = WriteResult.rejected(exc.path or path, url, str(exc))
        except StoreError:
            # The store has already logged the underlying error.
            logger.error(f"Store failure writing path={path!r}")
            result = WriteResult.rejected(path, url, STORE_ERROR_MESSAGE)

        WRITE_REQUESTS_TOTAL.labels(outcome=result.outcome).inc()
        if result.ok and result.path:
            self._invalidate(result.path)
        return result

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _write_explicit(self, path: str, url: str | None) -> WriteResult:
        existing = await self._store.find_by_path(path)
        if existing is None and PATH_SEPARATOR not in path:
            raise MappingValidationError(f"path must contain a separator '{PATH_SEPARATOR}'")
        if not url:
            raise MappingValidationError("url must not be empty")

        if existing is not None:
            await self._store.update_url_by_path(path, url)
            existing.url = url
            logger.info(f"Mapping updated: {path} -> {url}")
            return WriteResult.updated(existing)

        mapping = UrlMapping(short_id=None, path=path, url=url, origin_url=url)
        await self._store.insert(mapping)
        logger.info(f"Mapping created: {path} -> {url}")
        return WriteResult.created(mapping)

    async def _write_short(self, url: str) -> WriteResult:
        full_id = long_id(url)
        candidate = full_id[: self._min_short_id_length]

        colliding = await self._store.find_by_short_id_prefix(candidate)
        if colliding:
            candidate = full_id[: max(len(m.short_id) for m in colliding)]
            reusable = None
            for existing in colliding:
                if existing.url == url:
                    reusable = existing
            if reusable is not None:
                logger.debug(f"Reusing short id {reusable.short_id} for {url}")
                return WriteResult.reused(reusable)

            taken = {m.short_id for m in colliding}
            while candidate in taken and len(candidate) < len(full_id):
                candidate = full_id[: len(candidate) + 1]

        mapping = UrlMapping(short_id=candidate, path=candidate, url=url, origin_url=url)
        await self._store.insert(mapping)
        logger.info(f"Short mapping created: {candidate} -> {url}")
        return WriteResult.created(mapping)

    def _invalidate(self, path: str) -> None:
        # Bump before any delete so in-flight lookups drop their fills.
        self._generations.bump(path)
        # Local entry must be gone before the result is returned.
        self._local.delete(path)
        self._maintainer.spawn(self._invalidate_tiers(path), name=f"invalidate:{path}")

    async def _invalidate_tiers(self, path: str) -> None:
        await self._distributed.delete(path)
        self._local.delete(path)
