"""Pytest configuration.

The row engine's QObjects (debounce and fade timers, queued signals) need a
Qt application instance. We create a single `QApplication` for the entire
session as early as possible, on the offscreen platform so the suite runs on
headless machines, and cleanly shut it down at the end.
"""

from __future__ import annotations

import os
from typing import Any

import pytest

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QApplication exists before collecting/running tests."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    global _APP

    app = QApplication.instance()
    if app is None:
        # Keep a strong ref so it isn't GC'd mid-session.
        _APP = QApplication([])
    else:
        _APP = app


def pytest_sessionfinish(session, exitstatus) -> None:  # noqa: ARG001
    """Attempt a clean Qt shutdown to avoid lingering threads at interpreter exit."""
    try:
        from PySide6.QtWidgets import QApplication
    except ImportError:
        return

    app = QApplication.instance()
    if app is None:
        return

    app.quit()
    app.processEvents()


@pytest.fixture(autouse=True)
def _reset_metrics():
    from search_viewer.row_engine.metrics import metrics

    metrics.reset()
    yield
    metrics.reset()
