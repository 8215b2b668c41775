"""Three-tier read-through resolution of paths to URLs.

Lookup Flow
===========
::
    ┌─────────────┐
    │ resolve(p)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐  HIT
    │ Local cache │───────────────────────────────► return
    └──────┬──────┘
           ▼ MISS
    ┌─────────────┐  HIT   ┌──────────────┐
    │ Redis       │──────► │ fill local   │──────► return
    └──────┬──────┘        └──────────────┘
           ▼ MISS
    ┌─────────────┐  HIT   ┌──────────────────────────┐
    │ PostgreSQL  │──────► │ background: fill Redis,  │──► return
    └──────┬──────┘        │ then fill local          │
           ▼ MISS          └──────────────────────────┘
         None

Key Behaviours
===============
- Each tier is consulted only after a miss in the faster one.
- Backfill never blocks or fails the caller; Redis backfill runs detached.
- Misses are not cached, so a later write is visible immediately.
- A fill is dropped (and a Redis fill undone) when the path was written
  after the lookup started, tracked by ``PathGenerations``.
- Store errors propagate; the store is authoritative.
"""

import logging

from prometheus_client import Counter

from shortlink.background import CacheMaintainer
from shortlink.distributed_cache import DistributedCache
from shortlink.enums import CacheTier
from shortlink.generations import PathGenerations
from shortlink.local_cache import LocalCache
from shortlink.store import MappingStore

__all__ = ["Resolver"]

logger = logging.getLogger(__name__)

RESOLVE_REQUESTS_TOTAL = Counter(
    "shortlink_resolve_requests_total",
    "Path lookups by the tier that answered them",
    ["tier"],
)


class Resolver:
    def __init__(
        self,
        local_cache: LocalCache,
        distributed_cache: DistributedCache,
        store: MappingStore,
        maintainer: CacheMaintainer,
        generations: PathGenerations,
    ) -> None:
        self._local = local_cache
        self._distributed = distributed_cache
        self._store = store
        self._maintainer = maintainer
        self._generations = generations

    async def resolve(self, path: str) -> str | None:
        if not path:
            RESOLVE_REQUESTS_TOTAL.labels(tier=CacheTier.MISS).inc()
            return None

        url = self._local.get(path)
        if url is not None:
            RESOLVE_REQUESTS_TOTAL.labels(tier=CacheTier.LOCAL).inc()
            return url

        # Taken before any slower tier is read.
        generation = self._generations.current(path)

        url = await self._distributed.get(path)
        if url is not None:
            RESOLVE_REQUESTS_TOTAL.labels(tier=CacheTier.DISTRIBUTED).inc()
            if self._generations.current(path) == generation:
                self._local.set(path, url)
            return url

        mapping = await self._store.find_by_path(path)
        if mapping is None or not mapping.url:
            RESOLVE_REQUESTS_TOTAL.labels(tier=CacheTier.MISS).inc()
            logger.debug(f"No mapping for path {path!r}")
            return None

        RESOLVE_REQUESTS_TOTAL.labels(tier=CacheTier.STORE).inc()
        self._maintainer.spawn(self._backfill(path, mapping.url, generation), name=f"backfill:{path}")
        return mapping.url

    async def _backfill(self, path: str, url: str, generation: int) -> None:
        stored = await self._distributed.set(path, url)
        if self._generations.current(path) != generation:
            # A write landed while the value was in flight.
            if stored:
                await self._distributed.delete(path)
            logger.debug(f"Dropped stale backfill for path {path!r}")
            return
        self._local.set(path, url)
