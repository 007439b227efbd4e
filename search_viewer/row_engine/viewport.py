"""Viewport math: pixel scroll position -> inclusive row window.

Everything here is pure Python and Qt-free so it can be used from any thread
and tested without an application instance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class RowRange:
    """Inclusive row window. ``end < start`` means empty."""

    start: int
    end: int

    @property
    def is_empty(self) -> bool:
        return self.end < self.start

    def __len__(self) -> int:
        return 0 if self.is_empty else self.end - self.start + 1

    def __iter__(self):
        return iter(range(self.start, self.end + 1))

    def __contains__(self, index: object) -> bool:
        return isinstance(index, int) and self.start <= index <= self.end


EMPTY_RANGE = RowRange(0, -1)


def max_scroll_offset(row_count: int, row_height: float, viewport_height: float) -> float:
    return max(0.0, row_count * row_height - viewport_height)


def clamp_scroll_offset(offset: float, row_count: int, row_height: float, viewport_height: float) -> float:
    return max(0.0, min(float(offset), max_scroll_offset(row_count, row_height, viewport_height)))


def compute_range(
    scroll_offset: float,
    viewport_height: float,
    row_height: float,
    row_count: int,
    overscan: int,
) -> RowRange:
    """Map a scroll position to the inclusive window of rows to keep loaded.

    The offset is clamped to ``[0, max_scroll_offset]`` *before* the window is
    derived, so scrolling past the tail still yields the last full page.
    """
    if row_count <= 0 or viewport_height <= 0 or row_height <= 0:
        return EMPTY_RANGE

    offset = clamp_scroll_offset(scroll_offset, row_count, row_height, viewport_height)
    overscan = max(0, int(overscan))

    first = int(offset // row_height)
    last = first + math.ceil(viewport_height / row_height) - 1
    return RowRange(
        start=max(0, first - overscan),
        end=min(row_count - 1, last + overscan),
    )


@dataclass
class Viewport:
    """Mutable scroll state; mutated by scroll/resize, read by RangeComputer."""

    scroll_offset: float = 0.0
    height: float = 0.0
    row_height: float = 24.0
    overscan: int = 5

    def total_height(self, row_count: int) -> float:
        return row_count * self.row_height

    def max_scroll_offset(self, row_count: int) -> float:
        return max_scroll_offset(row_count, self.row_height, self.height)

    def clamp(self, row_count: int) -> float:
        self.scroll_offset = clamp_scroll_offset(self.scroll_offset, row_count, self.row_height, self.height)
        return self.scroll_offset


class RangeComputer:
    """Stateful wrapper that hands back the previous RowRange object when the
    window did not move, so consumers can detect a no-op with ``is``."""

    def __init__(self) -> None:
        self._last: RowRange = EMPTY_RANGE

    @property
    def last(self) -> RowRange:
        return self._last

    def compute(self, viewport: Viewport, row_count: int) -> RowRange:
        nxt = compute_range(
            viewport.scroll_offset,
            viewport.height,
            viewport.row_height,
            row_count,
            viewport.overscan,
        )
        if nxt == self._last:
            return self._last
        self._last = nxt
        return nxt

    def reset(self) -> None:
        self._last = EMPTY_RANGE
