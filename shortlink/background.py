"""Detached background work for cache population and invalidation.

Cache maintenance must never delay or fail a request, so the resolver and
writer hand their cache coroutines to a ``CacheMaintainer`` instead of
awaiting them. The maintainer keeps a strong reference to each task until it
finishes (the event loop only keeps weak ones), logs failures, and lets the
application drain outstanding work on shutdown.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from prometheus_client import Counter

__all__ = ["CacheMaintainer"]

logger = logging.getLogger(__name__)

BACKGROUND_TASK_FAILURES_TOTAL = Counter(
    "shortlink_background_task_failures_total",
    "Detached cache maintenance tasks that raised",
)


class CacheMaintainer:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def drain(self) -> None:
        """Wait until every spawned task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self, timeout: float = 5.0) -> None:
        try:
            await asyncio.wait_for(self.drain(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Cancelling {len(self._tasks)} cache maintenance tasks on shutdown")
            for task in list(self._tasks):
                task.cancel()
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            BACKGROUND_TASK_FAILURES_TOTAL.inc()
            logger.warning(f"Cache maintenance task {task.get_name()} failed: {exc!r}")
