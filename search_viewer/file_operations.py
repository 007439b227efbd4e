"""Side-channel file actions for result rows.

Fire-and-forget: the row engine never waits on, or reads back from, these.
"""

from pathlib import Path

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices

from search_viewer.logger import get_logger
from search_viewer.path_utils import abs_path_str

_logger = get_logger("file_operations")


def _local_path(path: str) -> str:
    p = str(path)
    if p.startswith("file:"):
        url = QUrl(p)
        if url.isLocalFile():
            p = url.toLocalFile()
    return p


def open_externally(path: str) -> bool:
    """Open ``path`` with the desktop's default handler."""
    p = _local_path(path)
    if not p:
        return False
    ok = bool(QDesktopServices.openUrl(QUrl.fromLocalFile(abs_path_str(p))))
    if not ok:
        _logger.warning("open externally failed: %s", p)
    return ok


def reveal_in_file_manager(path: str) -> bool:
    """Open the folder containing ``path``."""
    p = _local_path(path)
    if not p:
        return False
    folder = str(Path(abs_path_str(p)).parent)
    ok = bool(QDesktopServices.openUrl(QUrl.fromLocalFile(folder)))
    if not ok:
        _logger.warning("reveal failed: %s", folder)
    return ok
