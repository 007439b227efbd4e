import pytest

PySide6 = pytest.importorskip("PySide6")  # noqa: F401

from PySide6.QtCore import Qt

from search_viewer.result_model import ResultTableModel, fmt_kb, fmt_time
from search_viewer.row_engine.session import SearchSession
from tests.helpers.fake_providers import FakeRowProvider, ImmediateSearchProvider


@pytest.fixture
def model_env():
    search = ImmediateSearchProvider({"foo": ["a", "b", "c"]})
    rows = FakeRowProvider()
    session = SearchSession(search, rows, row_height=24, overscan=0)
    session.set_viewport_height(48)
    model = ResultTableModel(session)
    return session, rows, model


def test_fmt_kb():
    assert fmt_kb(3482) == "3.4 KB"
    assert fmt_kb(12 * 1024) == "12 KB"
    assert fmt_kb(0) == "0.0 KB"
    assert fmt_kb(None) == ""


def test_fmt_time():
    assert fmt_time(None) == ""
    assert len(fmt_time(1_700_000_000)) == len("2023-11-14 22:13")


def test_headers(model_env):
    _session, _rows, model = model_env
    assert model.columnCount() == 5
    assert model.headerData(1, Qt.Orientation.Horizontal) == "Path"


def test_row_count_follows_results(model_env, qtbot):
    session, _rows, model = model_env
    with qtbot.waitSignal(model.modelReset, timeout=500):
        session.run_query("foo")
    assert model.rowCount() == 3


def test_unloaded_rows_render_empty(model_env):
    session, _rows, model = model_env
    session.run_query("foo")
    assert model.data(model.index(0, ResultTableModel.COL_NAME)) is None
    assert model.data(model.index(2, ResultTableModel.COL_SIZE)) is None


def test_loaded_rows_render_columns(model_env, qtbot):
    session, rows, model = model_env
    session.run_query("foo")
    with qtbot.waitSignal(model.dataChanged, timeout=500) as blocker:
        rows.resolve()

    top_left, bottom_right = blocker.args[0], blocker.args[1]
    assert (top_left.row(), bottom_right.row()) == (0, 1)

    assert model.data(model.index(0, ResultTableModel.COL_NAME)) == "a"
    assert model.data(model.index(0, ResultTableModel.COL_PATH)) == "/data/a"
    assert model.data(model.index(0, ResultTableModel.COL_SIZE)) == "2.0 KB"
    assert model.data(model.index(0, ResultTableModel.COL_MOD)) == fmt_time(1_700_000_000)
    assert model.data(model.index(0, ResultTableModel.COL_CREATED)) == fmt_time(1_600_000_000)
    assert model.data(model.index(0, 0), Qt.ItemDataRole.ToolTipRole) == "/data/a"
    # third row is outside the window and was never requested
    assert model.data(model.index(2, ResultTableModel.COL_NAME)) is None


def test_placeholder_shows_only_icon(model_env):
    session, _rows, model = model_env
    session.run_query("foo")
    session.apply_patches([("a", {"icon": "icon-a"})])

    idx = model.index(0, ResultTableModel.COL_NAME)
    assert model.data(idx, Qt.ItemDataRole.DecorationRole) == "icon-a"
    assert model.data(idx) is None


def test_non_contiguous_updates_are_split(model_env, qtbot):
    session, rows, model = model_env
    session.run_query("foo")
    rows.resolve()
    spans: list[tuple[int, int]] = []
    model.dataChanged.connect(lambda tl, br, *_: spans.append((tl.row(), br.row())))

    session.rows_updated.emit([2, 0, 7])
    assert spans == [(0, 0), (2, 2)]
