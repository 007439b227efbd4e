"""External collaborator contracts and a thread-pool adapter.

The engine never talks to the search index or the row-enrichment backend
directly. It holds objects satisfying the protocols below and only ever sees
``concurrent.futures.Future`` results, which may complete on any thread and
in any order.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Protocol, runtime_checkable

from search_viewer.logger import get_logger

_logger = get_logger("providers")


@runtime_checkable
class SearchProvider(Protocol):
    def search(self, query: str, *, case_sensitive: bool = False, use_regex: bool = False) -> Future:
        """Resolve to the ordered sequence of row keys matching ``query``."""
        ...


@runtime_checkable
class RowProvider(Protocol):
    def fetch_rows(self, keys: Sequence[Any]) -> Future:
        """Resolve to one record (RowRecord, dict or None) per key, same order."""
        ...


class ExecutorProvider:
    """Runs plain synchronous callables on a thread pool and returns futures.

    search_fn: (query, case_sensitive, use_regex) -> list of keys
    fetch_fn: (keys) -> list of row payloads
    """

    def __init__(
        self,
        search_fn: Callable[[str, bool, bool], Sequence[Any]] | None = None,
        fetch_fn: Callable[[list[Any]], Sequence[Any]] | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._search_fn = search_fn
        self._fetch_fn = fetch_fn
        workers = max_workers or max(2, min(4, (os.cpu_count() or 2)))
        self.max_workers = workers
        self.pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="row_provider")
        _logger.debug("ExecutorProvider init: workers=%s", workers)

    @classmethod
    def from_settings(
        cls,
        settings,
        search_fn: Callable[[str, bool, bool], Sequence[Any]] | None = None,
        fetch_fn: Callable[[list[Any]], Sequence[Any]] | None = None,
    ) -> ExecutorProvider:
        """Pool sized by the ``fetch_workers`` setting."""
        return cls(search_fn, fetch_fn, max_workers=settings.fetch_workers)

    def search(self, query: str, *, case_sensitive: bool = False, use_regex: bool = False) -> Future:
        if self._search_fn is None:
            raise NotImplementedError("no search function configured")
        return self.pool.submit(self._search_fn, query, case_sensitive, use_regex)

    def fetch_rows(self, keys: Sequence[Any]) -> Future:
        if self._fetch_fn is None:
            raise NotImplementedError("no fetch function configured")
        return self.pool.submit(self._fetch_fn, list(keys))

    def shutdown(self) -> None:
        self.pool.shutdown(wait=False, cancel_futures=True)
