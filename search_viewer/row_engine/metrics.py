"""Lightweight in-process metrics for development and tests.

Components record counters and timings here so a test (or a debug overlay)
can see how many batches were fetched, how many completions were discarded
as stale, and so on. No external deps.

Usage:
    from search_viewer.row_engine.metrics import metrics
    metrics.inc("load.batches")
    with metrics.timed("load.merge_duration"):
        ...
    snapshot = metrics.snapshot()
"""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from threading import RLock
from typing import Any


class _Metrics:
    def __init__(self) -> None:
        self._counters: dict[str, int] = defaultdict(int)
        self._timings: dict[str, list[float]] = defaultdict(list)
        self._lock = RLock()

    def inc(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[key] += int(amount)

    def count(self, key: str) -> int:
        with self._lock:
            return int(self._counters.get(key, 0))

    def observe(self, key: str, seconds: float) -> None:
        with self._lock:
            self._timings[key].append(float(seconds))

    @contextmanager
    def timed(self, key: str) -> Iterator[None]:
        """Record the wall time of the enclosed block under ``key``."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.observe(key, time.perf_counter() - start)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {k: list(v) for k, v in self._timings.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()


metrics = _Metrics()
