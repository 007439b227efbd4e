"""PatchApplier: merges unsolicited partial updates (icons) into cached rows.

Patches are best effort. A patch whose key is unknown to the current result
set is dropped; a patch for a row that is not cached is dropped too, except
when it only carries standalone metadata (the icon), which is parked in a
placeholder record until a fetch completes the row. Patches never touch the
load coordinator's in-flight bookkeeping.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from PySide6.QtCore import QObject, Signal

from search_viewer.logger import get_logger

from .errors import PatchResolutionMiss
from .metrics import metrics
from .records import RowRecord, apply_patch, is_standalone, patch_fields
from .result_set import ResultSet
from .row_cache import RowCache

_logger = get_logger("patch_applier")

# Keys accepted for the row key in dict-shaped patch events.
_KEY_FIELDS = ("key", "slab_index", "slabIndex")


@dataclass(frozen=True)
class RowPatch:
    key: Any
    fields: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(cls, event: Any) -> RowPatch:
        """Accept a RowPatch, a ``(key, fields)`` pair, or a flat dict event."""
        if isinstance(event, RowPatch):
            return event
        if isinstance(event, Mapping):
            for name in _KEY_FIELDS:
                if name in event:
                    fields = {k: v for k, v in event.items() if k not in _KEY_FIELDS}
                    return cls(event[name], fields)
            raise ValueError(f"patch event has no key field: {sorted(event)}")
        key, fields = event
        return cls(key, dict(fields))


class PatchApplier(QObject):
    rows_patched = Signal(list)  # indices whose cached record changed

    def __init__(self, cache: RowCache, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._cache = cache
        self._result_set = ResultSet()

    def reset(self, result_set: ResultSet) -> None:
        with self._cache.lock:
            self._result_set = result_set

    def resolve(self, key: Any) -> int:
        index = self._result_set.index_of(key)
        if index is None:
            raise PatchResolutionMiss(key)
        return index

    def apply(self, events: Iterable[Any]) -> list[int]:
        """Apply a batch of patch events; returns the indices that changed."""
        changed: list[int] = []
        with self._cache.lock:
            for event in events:
                try:
                    patch = RowPatch.coerce(event)
                except (TypeError, ValueError) as exc:
                    metrics.inc("patch.malformed")
                    _logger.debug("patch malformed (dropped): %s", exc)
                    continue
                index = self._apply_one(patch)
                if index is not None:
                    changed.append(index)
        if changed:
            self.rows_patched.emit(changed)
        return changed

    def _apply_one(self, patch: RowPatch) -> int | None:
        try:
            index = self.resolve(patch.key)
        except PatchResolutionMiss as miss:
            metrics.inc("patch.unresolved")
            _logger.debug("%s (dropped)", miss)
            return None

        fields = patch_fields(patch.fields)
        if not fields:
            metrics.inc("patch.dropped")
            return None

        current = self._cache.peek(index)
        if current is None:
            if not is_standalone(fields) or all(v is None for v in fields.values()):
                metrics.inc("patch.dropped")
                _logger.debug("patch for unloaded row dropped: index=%s fields=%s", index, sorted(fields))
                return None
            self._cache.put(index, RowRecord.placeholder(fields))
            metrics.inc("patch.placeholders")
            return index

        updated = apply_patch(current, fields)
        if updated is current:
            return None
        self._cache.replace(index, updated)
        metrics.inc("patch.applied")
        return index
