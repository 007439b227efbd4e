"""SearchSession: the single owner of the result set and everything keyed by it.

It wires the debouncer, the search provider, the viewport math, the load
coordinator and the patch applier together, and it is the only place that
replaces the result set (the generation-change handler).

Threading:
- Public methods are meant to be called from the thread the session lives in
  (the UI thread), except ``apply_patches`` which may be called from anywhere.
- Search completions are marshalled back to the session's thread through a
  queued signal before the result set is replaced.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import CancelledError, Future
from typing import Any

from PySide6.QtCore import QObject, Signal

from search_viewer.app.state.status_state import StatusState
from search_viewer.file_operations import open_externally, reveal_in_file_manager
from search_viewer.logger import get_logger

from .debouncer import SearchDebouncer
from .errors import QueryFailure
from .generation import GenerationToken
from .load_coordinator import LoadCoordinator
from .metrics import metrics
from .patch_applier import PatchApplier
from .providers import RowProvider, SearchProvider
from .records import RowRecord
from .result_set import ResultSet
from .row_cache import RowCache
from .viewport import RangeComputer, RowRange, Viewport

_logger = get_logger("session")


class SearchSession(QObject):
    """Query -> result set -> viewport window -> loaded rows.

    Signals:
        results_changed: a new result set was published (generation, row_count)
        range_changed: the visible window moved (start, end), inclusive
        rows_updated: cached rows changed by a fetch or a patch (indices)
        fetch_failed: a batch fetch failed; rows stay unloaded (message)
        notification: user-visible message, e.g. a failed search
    """

    results_changed = Signal(int, int)
    range_changed = Signal(int, int)
    rows_updated = Signal(list)
    fetch_failed = Signal(str)
    notification = Signal(str)

    # seq, query, keys, error
    _search_done = Signal(int, str, object, object)

    def __init__(
        self,
        search_provider: SearchProvider,
        row_provider: RowProvider,
        *,
        cache_size: int = 1000,
        row_height: float = 24,
        overscan: int = 5,
        debounce_ms: int = 300,
        status_fade_ms: int = 2000,
        opener: Callable[[str], Any] | None = None,
        revealer: Callable[[str], Any] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._search_provider = search_provider
        self._opener = opener or open_externally
        self._revealer = revealer or reveal_in_file_manager

        self._generation = GenerationToken()
        self._cache = RowCache(cache_size)
        self._result_set = ResultSet(generation=self._generation.current)

        self._loader = LoadCoordinator(row_provider, self._cache, self._generation, self)
        self._loader.rows_loaded.connect(self._on_rows_loaded)
        self._loader.fetch_failed.connect(self.fetch_failed)

        self._patcher = PatchApplier(self._cache, self)
        self._patcher.rows_patched.connect(self.rows_updated)

        self._debouncer = SearchDebouncer(debounce_ms, self)
        self._debouncer.query_ready.connect(self.run_query)

        self._viewport = Viewport(row_height=float(row_height), overscan=max(0, int(overscan)))
        self._ranges = RangeComputer()

        self.status = StatusState(status_fade_ms, self)

        self._query = ""
        self._case_sensitive = False
        self._use_regex = False
        self._query_seq = 0
        self._query_lock = threading.Lock()
        self._search_done.connect(self._apply_search_result)

    @classmethod
    def from_settings(
        cls,
        settings,
        search_provider: SearchProvider,
        row_provider: RowProvider,
        **kwargs,
    ) -> SearchSession:
        session = cls(
            search_provider,
            row_provider,
            cache_size=settings.cache_size,
            row_height=settings.row_height,
            overscan=settings.overscan,
            debounce_ms=settings.search_debounce_ms,
            status_fade_ms=settings.status_fade_delay_ms,
            **kwargs,
        )
        session._case_sensitive = settings.case_sensitive
        session._use_regex = settings.use_regex
        return session

    # ---- read API (presentation) -----------------------------------
    @property
    def generation(self) -> int:
        return self._generation.current

    @property
    def result_set(self) -> ResultSet:
        return self._result_set

    @property
    def row_count(self) -> int:
        return len(self._result_set)

    @property
    def cache(self) -> RowCache:
        return self._cache

    @property
    def loader(self) -> LoadCoordinator:
        return self._loader

    @property
    def debouncer(self) -> SearchDebouncer:
        return self._debouncer

    @property
    def query(self) -> str:
        return self._query

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    @property
    def use_regex(self) -> bool:
        return self._use_regex

    @property
    def visible_range(self) -> RowRange:
        return self._ranges.last

    @property
    def scroll_offset(self) -> float:
        return self._viewport.scroll_offset

    @property
    def viewport_height(self) -> float:
        return self._viewport.height

    @property
    def row_height(self) -> float:
        return self._viewport.row_height

    @property
    def total_height(self) -> float:
        return self._viewport.total_height(self.row_count)

    @property
    def max_scroll_offset(self) -> float:
        return self._viewport.max_scroll_offset(self.row_count)

    def key_at(self, index: int) -> Any | None:
        return self._result_set.key_at(index)

    def row(self, index: int) -> RowRecord | None:
        """Cached record for ``index`` (may be a partial placeholder), or None."""
        return self._cache.get(index)

    def visible_rows(self) -> list[tuple[int, RowRecord | None]]:
        """Frozen view of the current window for one render pass."""
        rng = self._ranges.last
        with self._cache.lock:
            return [(i, self._cache.get(i)) for i in rng]

    # ---- query -----------------------------------------------------
    def on_query_input(self, text: str) -> None:
        self._debouncer.on_input(text)

    def set_search_options(self, *, case_sensitive: bool | None = None, use_regex: bool | None = None) -> None:
        changed = False
        if case_sensitive is not None and bool(case_sensitive) != self._case_sensitive:
            self._case_sensitive = bool(case_sensitive)
            changed = True
        if use_regex is not None and bool(use_regex) != self._use_regex:
            self._use_regex = bool(use_regex)
            changed = True
        if changed and self._query.strip():
            self.run_query(self._query)

    def run_query(self, text: str) -> None:
        """Dispatch ``text`` now. Only the latest dispatched query may publish."""
        with self._query_lock:
            self._query_seq += 1
            seq = self._query_seq
        self._query = str(text)

        if not self._query.strip():
            _logger.debug("query empty: publishing empty result set")
            self.replace_results([])
            return

        metrics.inc("query.dispatched")
        _logger.debug(
            "query dispatched: seq=%s query=%r case=%s regex=%s",
            seq,
            self._query,
            self._case_sensitive,
            self._use_regex,
        )
        try:
            future = self._search_provider.search(
                self._query,
                case_sensitive=self._case_sensitive,
                use_regex=self._use_regex,
            )
        except Exception as exc:
            self._search_done.emit(seq, self._query, None, exc)
            return
        query = self._query
        future.add_done_callback(lambda f: self._on_search_future(f, seq, query))

    def _on_search_future(self, future: Future, seq: int, query: str) -> None:
        # May run on a provider thread; hand over to the session's thread.
        try:
            keys = list(future.result())
        except (CancelledError, Exception) as exc:
            self._search_done.emit(seq, query, None, exc)
            return
        self._search_done.emit(seq, query, keys, None)

    def _apply_search_result(self, seq: int, query: str, keys: Sequence[Any] | None, error: object) -> None:
        with self._query_lock:
            latest = self._query_seq
        if seq != latest:
            metrics.inc("query.stale_discards")
            _logger.debug("query stale: seq=%s latest=%s query=%r (dropped)", seq, latest, query)
            return
        if error is not None:
            failure = QueryFailure(query, error if isinstance(error, BaseException) else None)
            metrics.inc("query.failures")
            _logger.warning("%s", failure)
            self.replace_results([])
            self.notification.emit(str(failure))
            return
        self.replace_results(keys or [])

    # ---- generation change -----------------------------------------
    def replace_results(self, keys: Iterable[Any]) -> int:
        """Publish a new result set; returns the new generation.

        Advancing the generation, clearing the cache and resetting the
        in-flight/patch bookkeeping happen under one lock, so no completion
        can observe a half-applied change.
        """
        with self._cache.lock:
            generation = self._generation.advance()
            result_set = ResultSet(keys, generation)
            self._result_set = result_set
            self._cache.clear()
            self._loader.reset(result_set)
            self._patcher.reset(result_set)

        _logger.debug("results replaced: gen=%s rows=%d", generation, len(result_set))
        old_range = self._ranges.last
        self._viewport.scroll_offset = 0.0
        self._ranges.reset()
        self.results_changed.emit(generation, len(result_set))
        self._refresh_window(old_range)
        return generation

    # ---- viewport --------------------------------------------------
    def set_viewport_height(self, height: float) -> None:
        self._viewport.height = max(0.0, float(height))
        self._refresh_window()

    def set_row_height(self, row_height: float) -> None:
        if float(row_height) <= 0:
            raise ValueError(f"row height must be positive, got {row_height}")
        self._viewport.row_height = float(row_height)
        self._refresh_window()

    def set_overscan(self, overscan: int) -> None:
        self._viewport.overscan = max(0, int(overscan))
        self._refresh_window()

    def scroll_to(self, offset: float) -> float:
        """Scroll to ``offset`` pixels; returns the clamped offset actually used."""
        self._viewport.scroll_offset = float(offset)
        self._refresh_window()
        return self._viewport.scroll_offset

    def scroll_by(self, delta: float) -> float:
        return self.scroll_to(self._viewport.scroll_offset + float(delta))

    def scroll_to_top(self) -> float:
        return self.scroll_to(0.0)

    def _refresh_window(self, previous: RowRange | None = None) -> RowRange:
        row_count = self.row_count
        # clamp before computing the window
        self._viewport.clamp(row_count)
        if previous is None:
            previous = self._ranges.last
        rng = self._ranges.compute(self._viewport, row_count)
        if rng != previous:
            self.range_changed.emit(rng.start, rng.end)
        if not rng.is_empty:
            # no-op when everything is cached or in flight
            self._loader.ensure_loaded(rng.start, rng.end)
        return rng

    def _on_rows_loaded(self, generation: int, indices: list) -> None:
        if not self._generation.is_current(generation):
            return
        self.rows_updated.emit(list(indices))

    # ---- patches / actions / lifecycle -----------------------------
    def apply_patches(self, patches: Iterable[Any]) -> list[int]:
        return self._patcher.apply(patches)

    def _path_for(self, index: int) -> str | None:
        record = self._cache.peek(index)
        if record is not None and record.path:
            return record.path
        key = self._result_set.key_at(index)
        return key if isinstance(key, str) and key else None

    def open_externally(self, index: int) -> bool:
        path = self._path_for(index)
        if path is None:
            _logger.debug("open externally: no path for row %s", index)
            return False
        self._opener(path)
        return True

    def reveal(self, index: int) -> bool:
        """Show the row's containing folder in the file manager."""
        path = self._path_for(index)
        if path is None:
            _logger.debug("reveal: no path for row %s", index)
            return False
        self._revealer(path)
        return True

    def on_status_update(self, text: str) -> None:
        self.status.set_status_text(text)

    def on_init_completed(self) -> None:
        self.status.mark_initialized()

    def shutdown(self) -> None:
        """Stop timers and fence off every outstanding completion."""
        self._debouncer.cancel()
        self.status.stop()
        with self._query_lock:
            self._query_seq += 1
        with self._cache.lock:
            generation = self._generation.advance()
            self._result_set = ResultSet(generation=generation)
            self._cache.clear()
            self._loader.reset(self._result_set)
            self._patcher.reset(self._result_set)
        _logger.debug("session shut down: gen=%s", generation)
