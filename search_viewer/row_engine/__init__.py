"""Row Engine - viewport data cache and incremental loader.

This package provides the core data functionality of the viewer:
- Viewport math (viewport)
- Generation fencing (generation, result_set)
- Bounded row storage (row_cache, records)
- Batched, deduplicated loading (load_coordinator)
- Unsolicited partial updates (patch_applier)
- Query input debouncing (debouncer)

Usage:
    from search_viewer.row_engine import SearchSession

    session = SearchSession(search_provider, row_provider)
    session.rows_updated.connect(on_rows_updated)
    session.set_viewport_height(600)
    session.on_query_input("foo")
"""

from .errors import FetchFailure, PatchResolutionMiss, QueryFailure, RowEngineError
from .generation import GenerationToken
from .load_coordinator import LoadCoordinator
from .patch_applier import PatchApplier, RowPatch
from .providers import ExecutorProvider, RowProvider, SearchProvider
from .records import RowRecord, apply_patch, merge_fetched
from .result_set import ResultSet
from .row_cache import RowCache
from .debouncer import SearchDebouncer
from .session import SearchSession
from .viewport import EMPTY_RANGE, RangeComputer, RowRange, Viewport, compute_range

__all__ = [
    "EMPTY_RANGE",
    "ExecutorProvider",
    "FetchFailure",
    "GenerationToken",
    "LoadCoordinator",
    "PatchApplier",
    "PatchResolutionMiss",
    "QueryFailure",
    "RangeComputer",
    "ResultSet",
    "RowCache",
    "RowEngineError",
    "RowPatch",
    "RowProvider",
    "RowRange",
    "RowRecord",
    "SearchDebouncer",
    "SearchProvider",
    "SearchSession",
    "Viewport",
    "apply_patch",
    "compute_range",
    "merge_fetched",
]
