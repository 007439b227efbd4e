"""Bounded LRU store of enriched rows, keyed by position in the current result set."""

from __future__ import annotations

import threading
from collections import OrderedDict

from search_viewer.logger import get_logger

from .metrics import metrics
from .records import RowRecord

_logger = get_logger("row_cache")


class RowCache:
    """Capacity-bounded LRU cache of RowRecords.

    ``get`` promotes the entry to most-recently-used; ``peek`` and ``replace``
    do not. ``lock`` is re-entrant and is shared with the writers (load
    coordinator, patch applier, generation change) so a check-then-write
    sequence spanning several calls can be made atomic.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if int(capacity) <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = int(capacity)
        self._entries: OrderedDict[int, RowRecord] = OrderedDict()
        self.lock = threading.RLock()
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def evictions(self) -> int:
        return self._evictions

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def has(self, index: int) -> bool:
        with self.lock:
            return index in self._entries

    def is_loaded(self, index: int) -> bool:
        """Present and completed by a fetch (placeholders do not count)."""
        with self.lock:
            record = self._entries.get(index)
            return record is not None and not record.partial

    def get(self, index: int) -> RowRecord | None:
        with self.lock:
            record = self._entries.get(index)
            if record is None:
                return None
            # LRU: mark as most recently used
            self._entries.move_to_end(index)
            return record

    def peek(self, index: int) -> RowRecord | None:
        with self.lock:
            return self._entries.get(index)

    def put(self, index: int, record: RowRecord) -> None:
        with self.lock:
            if index in self._entries:
                self._entries.move_to_end(index)
            self._entries[index] = record
            while len(self._entries) > self._capacity:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                metrics.inc("cache.evictions")
                _logger.debug("evict: index=%s size=%d", evicted, len(self._entries))

    def replace(self, index: int, record: RowRecord) -> bool:
        """Refresh an existing slot in place; returns False if the slot is gone."""
        with self.lock:
            if index not in self._entries:
                return False
            self._entries[index] = record
            return True

    def clear(self) -> None:
        with self.lock:
            self._entries.clear()

    def snapshot(self, start: int, end: int) -> dict[int, RowRecord]:
        """Frozen copy of the cached rows in ``[start, end]`` for one render pass."""
        with self.lock:
            if end < start:
                return {}
            if end - start + 1 <= len(self._entries):
                return {i: self._entries[i] for i in range(start, end + 1) if i in self._entries}
            return {i: r for i, r in self._entries.items() if start <= i <= end}
