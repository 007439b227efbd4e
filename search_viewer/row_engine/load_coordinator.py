"""LoadCoordinator: fills gaps in the row cache for a requested window.

Threading:
- ``ensure_loaded`` is called from the UI thread (scroll/resize handlers).
- Provider futures may complete on any thread; completion handlers take the
  shared store lock before touching the cache or the in-flight set.
- Signals are emitted after the lock is released.
"""

from __future__ import annotations

import time
from concurrent.futures import CancelledError, Future

from PySide6.QtCore import QObject, Signal

from search_viewer.logger import get_logger

from .errors import FetchFailure
from .generation import GenerationToken
from .metrics import metrics
from .providers import RowProvider
from .records import RowRecord, merge_fetched
from .result_set import ResultSet
from .row_cache import RowCache

_logger = get_logger("load_coordinator")


class LoadCoordinator(QObject):
    """Issues one batched fetch per call for rows that are neither cached nor in flight."""

    rows_loaded = Signal(int, list)  # generation, indices merged into the cache
    fetch_failed = Signal(str)  # message

    def __init__(
        self,
        provider: RowProvider,
        cache: RowCache,
        generation: GenerationToken,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._provider = provider
        self._cache = cache
        self._generation = generation
        self._result_set = ResultSet(generation=generation.current)
        # Positions awaiting a response, for the current generation only.
        self._in_flight: set[int] = set()

    # ---- generation change -----------------------------------------
    def reset(self, result_set: ResultSet) -> None:
        """Adopt a new result set and forget everything in flight.

        Must be called with the new generation already advanced; responses
        for older generations are then discarded when they arrive.
        """
        with self._cache.lock:
            self._result_set = result_set
            self._in_flight.clear()

    # ---- queries ---------------------------------------------------
    def in_flight(self) -> frozenset[int]:
        with self._cache.lock:
            return frozenset(self._in_flight)

    def is_in_flight(self, index: int) -> bool:
        with self._cache.lock:
            return index in self._in_flight

    # ---- loading ---------------------------------------------------
    def ensure_loaded(self, start: int, end: int) -> list[int]:
        """Request every row in ``[start, end]`` that still needs loading.

        Returns the indices dispatched in this call; an empty list means no
        provider call was made.
        """
        with self._cache.lock:
            result_set = self._result_set
            total = len(result_set)
            if total == 0 or end < start:
                return []
            lo = max(0, int(start))
            hi = min(int(end), total - 1)
            batch = [
                i
                for i in range(lo, hi + 1)
                if i not in self._in_flight and not self._cache.is_loaded(i) and result_set.has_key_at(i)
            ]
            if not batch:
                metrics.inc("load.noop")
                return []
            self._in_flight.update(batch)
            generation = self._generation.current
            keys = [result_set.key_at(i) for i in batch]

        metrics.inc("load.batches")
        metrics.inc("load.rows_requested", len(batch))
        _logger.debug(
            "fetch queued: gen=%s rows=%d range=%s..%s in_flight=%d",
            generation,
            len(batch),
            batch[0],
            batch[-1],
            len(self._in_flight),
        )
        started = time.perf_counter()
        try:
            future = self._provider.fetch_rows(keys)
        except Exception as exc:
            _logger.exception("fetch submit failed: gen=%s rows=%d", generation, len(batch))
            self._on_failure(generation, batch, exc)
            return batch

        future.add_done_callback(lambda f: self._on_fetch_done(f, generation, batch, started))
        return batch

    def _on_fetch_done(self, future: Future, generation: int, batch: list[int], started: float) -> None:
        metrics.observe("load.fetch_duration", time.perf_counter() - started)
        try:
            payloads = list(future.result())
            if len(payloads) != len(batch):
                raise ValueError(f"provider returned {len(payloads)} rows for {len(batch)} keys")
            records = [RowRecord.from_payload(p) for p in payloads]
        except (CancelledError, Exception) as exc:
            self._on_failure(generation, batch, exc)
            return

        loaded: list[int] = []
        with self._cache.lock:
            if not self._generation.is_current(generation):
                # The reset already cleared the in-flight set; the indices may
                # be in flight again for the new generation, so leave them.
                metrics.inc("load.stale_discards")
                _logger.debug(
                    "fetch stale: gen=%s current=%s rows=%d (dropped)",
                    generation,
                    self._generation.current,
                    len(batch),
                )
                return
            with metrics.timed("load.merge_duration"):
                for index, record in zip(batch, records):
                    if record is not None:
                        self._cache.put(index, merge_fetched(self._cache.peek(index), record))
                        loaded.append(index)
            self._in_flight.difference_update(batch)

        metrics.inc("load.rows_loaded", len(loaded))
        _logger.debug("fetch merged: gen=%s rows=%d/%d", generation, len(loaded), len(batch))
        if loaded:
            self.rows_loaded.emit(generation, loaded)

    def _on_failure(self, generation: int, batch: list[int], exc: BaseException) -> None:
        with self._cache.lock:
            if not self._generation.is_current(generation):
                metrics.inc("load.stale_discards")
                _logger.debug("fetch failed for stale gen=%s (ignored): %s", generation, exc)
                return
            self._in_flight.difference_update(batch)

        failure = FetchFailure(batch, exc)
        metrics.inc("load.failures")
        _logger.warning("%s", failure)
        self.fetch_failed.emit(str(failure))
