"""Bounded in-process LRU cache of ``path -> url``.

This is the fastest lookup tier. It lives in a single event loop, so no
locking is needed: every operation runs to completion without awaiting.
"""

from collections import OrderedDict

__all__ = ["LocalCache"]


class LocalCache:
    """Least-recently-used mapping with a fixed maximum size.

    Example:
        >>> cache = LocalCache(max_size=2)
        >>> cache.set("a", "https://a.example")
        >>> cache.set("b", "https://b.example")
        >>> cache.get("a")
        'https://a.example'
        >>> cache.set("c", "https://c.example")  # evicts "b"
        >>> cache.get("b") is None
        True
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._max_size = max_size
        self._entries: OrderedDict[str, str] = OrderedDict()

    def get(self, key: str) -> str | None:
        value = self._entries.get(key)
        if value is not None:
            self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: str) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = value
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
