"""Row records and the two merge rules that write into the cache.

There are exactly two writers into a cached slot: a fetch response and a
patch. Both go through a function in this module so the precedence rules
live in one place:

- ``merge_fetched``: the fetch is authoritative for every field except the
  icon; an icon already present (typically from a patch) is kept.
- ``apply_patch``: only the fields named by the patch change.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from search_viewer.logger import get_logger

_logger = get_logger("records")

# Fields a patch may carry for a row that was never fetched. A placeholder
# holding only these is stored until a fetch completes it.
STANDALONE_FIELDS = frozenset({"icon"})

_METADATA_FIELDS = ("size", "mtime", "ctime")


@dataclass(frozen=True)
class RowRecord:
    path: str | None = None
    size: int | None = None
    mtime: float | None = None
    ctime: float | None = None
    icon: Any = None
    # True for a patch placeholder that has not been completed by a fetch.
    partial: bool = False

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in dataclasses.fields(cls) if f.name != "partial")

    @classmethod
    def from_payload(cls, payload: Any) -> RowRecord | None:
        """Build a record from a provider payload.

        Accepts a RowRecord, a bare path string, or a dict that is either flat
        (``{"path", "size", "mtime", "ctime", "icon"}``) or carries the stat
        fields under ``"metadata"``.
        """
        if payload is None:
            return None
        if isinstance(payload, RowRecord):
            return dataclasses.replace(payload, partial=False) if payload.partial else payload
        if isinstance(payload, str):
            return cls(path=payload)
        if not isinstance(payload, Mapping):
            raise TypeError(f"unsupported row payload: {type(payload).__name__}")

        meta = payload.get("metadata")
        meta = meta if isinstance(meta, Mapping) else {}
        values: dict[str, Any] = {"path": payload.get("path")}
        for name in _METADATA_FIELDS:
            value = meta.get(name)
            if value is None:
                value = payload.get(name)
            values[name] = value
        values["icon"] = payload.get("icon")
        return cls(
            path=str(values["path"]) if values["path"] is not None else None,
            size=int(values["size"]) if values["size"] is not None else None,
            mtime=float(values["mtime"]) if values["mtime"] is not None else None,
            ctime=float(values["ctime"]) if values["ctime"] is not None else None,
            icon=values["icon"],
        )

    @classmethod
    def placeholder(cls, fields: Mapping[str, Any]) -> RowRecord:
        return cls(partial=True, **{k: v for k, v in fields.items() if k in STANDALONE_FIELDS})


def merge_fetched(existing: RowRecord | None, fetched: RowRecord) -> RowRecord:
    """Merge a fetch response into whatever the slot currently holds."""
    if existing is not None and existing.icon is not None:
        return dataclasses.replace(fetched, icon=existing.icon, partial=False)
    if fetched.partial:
        return dataclasses.replace(fetched, partial=False)
    return fetched


def patch_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only the fields a RowRecord knows about."""
    known = RowRecord.field_names()
    out = {k: v for k, v in fields.items() if k in known}
    dropped = set(fields) - set(out)
    if dropped:
        _logger.debug("patch fields ignored: %s", sorted(dropped))
    return out


def apply_patch(existing: RowRecord, fields: Mapping[str, Any]) -> RowRecord:
    """Return ``existing`` with the patched fields replaced; absent fields are kept.

    Returns the same object when nothing changes, so callers can skip the
    cache write and the change notification.
    """
    changes = {k: v for k, v in patch_fields(fields).items() if getattr(existing, k) != v}
    if not changes:
        return existing
    return dataclasses.replace(existing, **changes)


def is_standalone(fields: Mapping[str, Any]) -> bool:
    known = patch_fields(fields)
    return bool(known) and set(known) <= STANDALONE_FIELDS
