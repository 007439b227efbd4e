from __future__ import annotations

from PySide6.QtCore import Property, QObject, QTimer, Signal

DEFAULT_STATUS_TEXT = "Walking filesystem..."
DEFAULT_FADE_DELAY_MS = 2000


class StatusState(QObject):
    """State bound by the status bar: indexing progress text and init completion."""

    statusTextChanged = Signal(str)
    initializedChanged = Signal(bool)
    statusBarVisibleChanged = Signal(bool)

    def __init__(self, fade_delay_ms: int = DEFAULT_FADE_DELAY_MS, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._status_text = DEFAULT_STATUS_TEXT
        self._initialized = False
        self._status_bar_visible = True

        self._fade_timer = QTimer(self)
        self._fade_timer.setSingleShot(True)
        self._fade_timer.setInterval(max(0, int(fade_delay_ms)))
        self._fade_timer.timeout.connect(self._hide_status_bar)

    def _get_status_text(self) -> str:
        return str(self._status_text)

    statusText = Property(str, _get_status_text, notify=statusTextChanged)  # type: ignore[arg-type]

    def _get_initialized(self) -> bool:
        return bool(self._initialized)

    initialized = Property(bool, _get_initialized, notify=initializedChanged)  # type: ignore[arg-type]

    def _get_status_bar_visible(self) -> bool:
        return bool(self._status_bar_visible)

    statusBarVisible = Property(bool, _get_status_bar_visible, notify=statusBarVisibleChanged)  # type: ignore[arg-type]

    # ---- mutation helpers (called by the session) ----
    def set_status_text(self, text: str) -> None:
        t = str(text)
        if t == self._status_text:
            return
        self._status_text = t
        self.statusTextChanged.emit(t)

    def mark_initialized(self) -> None:
        # one-shot: later signals are ignored
        if self._initialized:
            return
        self._initialized = True
        self.initializedChanged.emit(True)
        self._fade_timer.start()

    def _hide_status_bar(self) -> None:
        if not self._status_bar_visible:
            return
        self._status_bar_visible = False
        self.statusBarVisibleChanged.emit(False)

    def stop(self) -> None:
        self._fade_timer.stop()
