from __future__ import annotations

from PySide6.QtCore import QObject, QTimer, Signal

from search_viewer.logger import get_logger

_logger = get_logger("debouncer")

DEFAULT_QUIET_MS = 300


class SearchDebouncer(QObject):
    """Coalesces rapid input into one ``query_ready`` emission.

    Every ``on_input`` restarts a single-shot timer; only the text of the last
    call inside the quiet period is dispatched.
    """

    query_ready = Signal(str)

    def __init__(self, quiet_ms: int = DEFAULT_QUIET_MS, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._pending: str | None = None
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(quiet_ms)))
        self._timer.timeout.connect(self._fire)

    @property
    def quiet_ms(self) -> int:
        return int(self._timer.interval())

    def set_quiet_ms(self, quiet_ms: int) -> None:
        self._timer.setInterval(max(0, int(quiet_ms)))

    @property
    def pending(self) -> str | None:
        return self._pending

    def is_pending(self) -> bool:
        return self._timer.isActive()

    def on_input(self, text: str) -> None:
        self._pending = str(text)
        # start() on an active timer stops and restarts it
        self._timer.start()

    def flush(self) -> None:
        """Dispatch the pending text now, if any."""
        if self._pending is None:
            return
        self._timer.stop()
        self._fire()

    def cancel(self) -> None:
        self._timer.stop()
        self._pending = None

    def _fire(self) -> None:
        text, self._pending = self._pending, None
        if text is None:
            return
        _logger.debug("debounce fired: %r", text)
        self.query_ready.emit(text)
