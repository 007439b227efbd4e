"""Failure taxonomy of the row engine.

None of these are fatal. Provider exceptions are wrapped into one of them at
the future boundary so logs and notifications carry a consistent message.
"""

from __future__ import annotations


class RowEngineError(Exception):
    """Base class for row engine failures."""


class QueryFailure(RowEngineError):
    """The search provider failed; the session publishes an empty result set."""

    def __init__(self, query: str, cause: BaseException | None = None) -> None:
        self.query = query
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"search failed for {query!r}{detail}")


class FetchFailure(RowEngineError):
    """A batched row fetch failed; the batch stays unloaded."""

    def __init__(self, indices: list[int], cause: BaseException | str | None = None) -> None:
        self.indices = list(indices)
        self.cause = cause
        span = f"{self.indices[0]}..{self.indices[-1]}" if self.indices else "-"
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"failed loading {len(self.indices)} rows [{span}]{detail}")


class PatchResolutionMiss(RowEngineError):
    """A patch referenced a key that is not in the current result set."""

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"patch key not in result set: {key!r}")
