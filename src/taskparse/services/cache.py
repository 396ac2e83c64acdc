"""Bounded least-recently-used store of past interpretations.

The cache does no locking of its own. Its single owner, the dispatcher,
serializes every call through one lock and scans similarity over the
snapshot returned by ``iterate``.
"""

from collections import OrderedDict

from taskparse.services.intent import CacheEntry

DEFAULT_CAPACITY = 1000


class InterpretationCache:
    """LRU map from raw input text to the interpretation produced for it."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Cache capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str) -> CacheEntry | None:
        """Look up ``key`` and mark it most recently used."""
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        """Insert or replace ``key``, evicting the least recently used entry when full."""
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = entry
        while len(self._entries) > self._capacity:
            self._entries.popitem(last=False)

    def iterate(self) -> list[tuple[str, CacheEntry]]:
        """Snapshot of all entries, least recently used first."""
        return list(self._entries.items())

    def stats(self) -> tuple[int, int]:
        """(number of entries, capacity)"""
        return len(self._entries), self._capacity

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
