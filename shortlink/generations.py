"""Per-path write generations used to discard stale cache backfills.

Every successful write bumps the generation of its path. A lookup takes the
generation before it reads a slower tier and only fills a faster tier if the
generation is unchanged afterwards, so a value read before a write can never
be cached after that write's invalidation.

The table is bounded. Evicted paths fall back to a floor that is at least
the largest evicted generation, which can only make a comparison fail (the
backfill is skipped), never succeed wrongly.
"""

import itertools
from collections import OrderedDict

__all__ = ["PathGenerations"]


class PathGenerations:
    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._counter = itertools.count(1)
        self._generations: OrderedDict[str, int] = OrderedDict()
        self._floor = 0

    def current(self, path: str) -> int:
        return self._generations.get(path, self._floor)

    def bump(self, path: str) -> int:
        generation = next(self._counter)
        self._generations[path] = generation
        self._generations.move_to_end(path)
        while len(self._generations) > self._max_size:
            _, evicted = self._generations.popitem(last=False)
            self._floor = max(self._floor, evicted)
        return generation

    def __len__(self) -> int:
        return len(self._generations)
