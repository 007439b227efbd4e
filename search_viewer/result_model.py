"""Result model: UI-thread table model over a SearchSession.

The model only reads what the session has cached. It never triggers loads
from data(); loading is driven by the session's viewport (scroll/resize),
which is the only place that knows which rows are about to be painted.
"""

from __future__ import annotations

from datetime import datetime

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from search_viewer.logger import get_logger
from search_viewer.path_utils import display_name
from search_viewer.row_engine.records import RowRecord
from search_viewer.row_engine.session import SearchSession

_logger = get_logger("result_model")

_KB = 1024
_SMALL_KB = 10


def fmt_kb(size_bytes: int | None) -> str:
    """Bytes as KB, one decimal below 10 KB (``"3.4 KB"``, ``"12 KB"``)."""
    if size_bytes is None:
        return ""
    try:
        kb = int(size_bytes) / _KB
    except (TypeError, ValueError):
        return ""
    if kb < _SMALL_KB:
        return f"{kb:.1f} KB"
    return f"{kb:.0f} KB"


def fmt_time(seconds: float | None) -> str:
    if seconds is None:
        return ""
    try:
        return datetime.fromtimestamp(float(seconds)).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return ""


class ResultTableModel(QAbstractTableModel):
    """Columns: 0 Name, 1 Path, 2 Modified, 3 Created, 4 Size."""

    COL_NAME = 0
    COL_PATH = 1
    COL_MOD = 2
    COL_CREATED = 3
    COL_SIZE = 4

    HEADERS = ("Name", "Path", "Modified", "Created", "Size")

    def __init__(self, session: SearchSession, parent=None) -> None:
        super().__init__(parent)
        self._session = session
        session.results_changed.connect(self._on_results_changed)
        session.rows_updated.connect(self._on_rows_updated)

    # ---- Qt model basics -----------------------------------------
    def rowCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        if parent is not None and parent.isValid():
            return 0
        return self._session.row_count

    def columnCount(self, parent: QModelIndex | None = None) -> int:  # type: ignore[override]
        return len(self.HEADERS)

    def headerData(self, section, orientation, role=Qt.ItemDataRole.DisplayRole):  # type: ignore[override]
        if orientation == Qt.Orientation.Horizontal and role == Qt.ItemDataRole.DisplayRole:
            if 0 <= int(section) < len(self.HEADERS):
                return self.HEADERS[int(section)]
        return super().headerData(section, orientation, role)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):  # type: ignore[override]  # noqa: PLR0911
        if not index.isValid():
            return None
        row = int(index.row())
        if row < 0 or row >= self._session.row_count:
            return None

        record = self._session.cache.peek(row)
        if record is None:
            return None

        if role == Qt.ItemDataRole.DecorationRole and index.column() == self.COL_NAME:
            # Placeholders may already carry the icon.
            return record.icon

        # A placeholder is not a loaded row: show nothing but the icon.
        if record.partial:
            return None

        if role == Qt.ItemDataRole.DisplayRole:
            return self._display_text(record, int(index.column()))

        if role == Qt.ItemDataRole.ToolTipRole:
            return record.path or None

        if role == Qt.ItemDataRole.TextAlignmentRole:
            if index.column() == self.COL_SIZE:
                return Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter
            return Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter

        return None

    def _display_text(self, record: RowRecord, col: int) -> str:
        path = record.path or ""
        if col == self.COL_NAME:
            return display_name(path) if path else ""
        if col == self.COL_PATH:
            return path
        if col == self.COL_MOD:
            return fmt_time(record.mtime)
        if col == self.COL_CREATED:
            return fmt_time(record.ctime)
        if col == self.COL_SIZE:
            return fmt_kb(record.size)
        return ""

    # ---- session signal handlers ---------------------------------
    def _on_results_changed(self, generation: int, row_count: int) -> None:
        _logger.debug("model reset: gen=%s rows=%d", generation, row_count)
        self.beginResetModel()
        self.endResetModel()

    def _on_rows_updated(self, indices: list) -> None:
        if not indices:
            return
        last_col = self.columnCount() - 1
        count = self._session.row_count
        rows = sorted({int(i) for i in indices if 0 <= int(i) < count})
        if not rows:
            return
        # Coalesce contiguous rows into one dataChanged per run.
        run_start = prev = rows[0]
        for r in rows[1:] + [None]:
            if r is not None and r == prev + 1:
                prev = r
                continue
            self.dataChanged.emit(self.index(run_start, 0), self.index(prev, last_col))
            if r is not None:
                run_start = prev = r
