import time

import pytest

from search_viewer.row_engine.metrics import metrics
from search_viewer.row_engine.session import SearchSession
from search_viewer.row_engine.viewport import RowRange
from search_viewer.settings_manager import SettingsManager
from tests.helpers.fake_providers import FakeRowProvider, FakeSearchProvider, ImmediateSearchProvider


@pytest.fixture
def providers():
    search = FakeSearchProvider({"foo": ["a", "b", "c"], "bar": ["x", "y"]})
    rows = FakeRowProvider()
    return search, rows


def _session(search, rows, **kwargs) -> SearchSession:
    kwargs.setdefault("overscan", 0)
    session = SearchSession(search, rows, row_height=24, **kwargs)
    session.set_viewport_height(48)  # two rows
    return session


def test_stale_fetch_after_new_query_never_reaches_cache(providers):
    search, rows = providers
    session = _session(search, rows)

    session.run_query("foo")
    search.resolve()
    assert session.row_count == 3
    assert rows.requested == [["a", "b"]]

    session.run_query("bar")
    search.resolve()
    assert session.row_count == 2
    assert rows.requested == [["a", "b"], ["x", "y"]]

    rows.resolve(0)  # late answer for "foo"
    assert not session.cache.has(0)
    assert not session.cache.has(1)

    rows.resolve(1)
    assert session.row(0).path == "/data/x"
    assert session.row(1).path == "/data/y"


def test_scroll_loads_new_window_only(providers):
    search, rows = providers
    search.results["many"] = [f"k{i}" for i in range(100)]
    session = _session(search, rows)

    session.run_query("many")
    search.resolve()
    rows.resolve()

    session.scroll_to(24 * 10)
    assert session.visible_range == RowRange(10, 11)
    assert rows.requested[-1] == ["k10", "k11"]

    # back to the top: rows 0-1 are cached, nothing new requested
    session.scroll_to_top()
    assert len(rows.calls) == 2


def test_scroll_is_clamped_to_content(providers):
    search, rows = providers
    search.results["many"] = [f"k{i}" for i in range(10)]
    session = _session(search, rows)
    session.run_query("many")
    search.resolve()

    assert session.total_height == 240
    assert session.scroll_to(10_000) == 240 - 48
    assert session.visible_range == RowRange(8, 9)
    assert session.scroll_by(-10_000) == 0


def test_new_results_reset_scroll_to_top(providers):
    search, rows = providers
    search.results["many"] = [f"k{i}" for i in range(50)]
    session = _session(search, rows)
    session.run_query("many")
    search.resolve()
    session.scroll_to(24 * 20)

    session.run_query("foo")
    search.resolve()
    assert session.scroll_offset == 0
    assert session.visible_range == RowRange(0, 1)


def test_only_latest_query_publishes(providers, qtbot):
    search, rows = providers
    session = _session(search, rows)

    session.run_query("foo")
    session.run_query("bar")
    search.resolve(1)
    assert session.result_set.keys == ("x", "y")

    with qtbot.assertNotEmitted(session.results_changed):
        search.resolve(0)
    assert session.result_set.keys == ("x", "y")
    assert metrics.count("query.stale_discards") == 1


def test_blank_query_publishes_empty_without_calling_provider(providers, qtbot):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    search.resolve()

    with qtbot.waitSignal(session.results_changed, timeout=500) as blocker:
        session.run_query("   ")
    assert search.queries == ["foo"]
    assert blocker.args[1] == 0
    assert session.row_count == 0
    assert len(session.cache) == 0
    assert session.visible_range.is_empty


def test_query_failure_publishes_empty_and_notifies(providers, qtbot):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    search.resolve()

    session.run_query("broken")
    with qtbot.waitSignal(session.notification, timeout=500) as blocker:
        search.fail()
    assert "broken" in blocker.args[0]
    assert session.row_count == 0
    assert metrics.count("query.failures") == 1


def test_search_options_rerun_current_query(providers):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    session.set_search_options(case_sensitive=True)
    session.set_search_options(case_sensitive=True)  # unchanged
    session.set_search_options(use_regex=True)

    assert [(q, c, r) for q, c, r, _f in search.calls] == [
        ("foo", False, False),
        ("foo", True, False),
        ("foo", True, True),
    ]


def test_search_options_without_query_do_not_dispatch(providers):
    search, rows = providers
    session = _session(search, rows)
    session.set_search_options(case_sensitive=True)
    assert search.calls == []
    assert session.case_sensitive is True


def test_debounced_input_reaches_provider(providers):
    search, rows = providers
    session = _session(search, rows)
    session.on_query_input("f")
    session.on_query_input("foo")
    session.debouncer.flush()
    assert search.queries == ["foo"]


def test_patch_then_fetch_keeps_icon():
    search = ImmediateSearchProvider({"foo": ["a", "b"]})
    rows = FakeRowProvider()
    session = _session(search, rows)
    session.run_query("foo")
    assert rows.requested == [["a", "b"]]

    session.apply_patches([("b", {"icon": "icon-b"})])
    assert session.cache.peek(1).partial is True

    rows.resolve()
    rec = session.row(1)
    assert rec.partial is False
    assert rec.icon == "icon-b"
    assert rec.path == "/data/b"


def test_rows_updated_after_fetch(providers, qtbot):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    search.resolve()
    with qtbot.waitSignal(session.rows_updated, timeout=500) as blocker:
        rows.resolve()
    assert blocker.args == [[0, 1]]


def test_fetch_failure_is_forwarded_and_retried_on_next_scroll(providers, qtbot):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    search.resolve()
    with qtbot.waitSignal(session.fetch_failed, timeout=500):
        rows.fail()

    session.scroll_to(0)
    assert rows.requested == [["a", "b"], ["a", "b"]]


def test_visible_rows_snapshot(providers):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    search.resolve()
    assert session.visible_rows() == [(0, None), (1, None)]
    rows.resolve()
    snapshot = session.visible_rows()
    assert [i for i, _rec in snapshot] == [0, 1]
    assert snapshot[0][1].path == "/data/a"


def test_open_externally_uses_fetched_path(providers):
    search, rows = providers
    opened: list[str] = []
    session = _session(search, rows, opener=opened.append)
    session.run_query("foo")
    search.resolve()

    # not fetched yet: fall back to a string key
    assert session.open_externally(0) is True
    rows.resolve()
    assert session.open_externally(1) is True
    assert session.open_externally(99) is False
    assert opened == ["a", "/data/b"]


def test_status_updates_route_to_status_state(providers):
    search, rows = providers
    session = _session(search, rows)
    session.on_status_update("Indexed 10 files")
    assert session.status.statusText == "Indexed 10 files"
    session.on_init_completed()
    assert session.status.initialized is True


def test_shutdown_fences_outstanding_work(providers):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    search.resolve()
    session.run_query("bar")
    session.shutdown()

    search.resolve()
    rows.resolve(0)
    assert session.row_count == 0
    assert len(session.cache) == 0


def test_row_height_must_be_positive(providers):
    search, rows = providers
    session = _session(search, rows)
    with pytest.raises(ValueError):
        session.set_row_height(0)


def test_from_settings(tmp_path, providers):
    search, rows = providers
    settings = SettingsManager(str(tmp_path / "settings.json"))
    settings.set("row_height", 30)
    settings.set("use_regex", True)
    session = SearchSession.from_settings(settings, search, rows)
    assert session.row_height == 30
    assert session.use_regex is True
    assert session.cache.capacity == 1000
    assert session.debouncer.quiet_ms == 300


def test_debounced_typing_calls_provider_once_after_quiet_period(qtbot):
    class _TimedSearch(FakeSearchProvider):
        def __init__(self) -> None:
            super().__init__({"foo": ["a"]})
            self.called_at: list[float] = []

        def search(self, query, *, case_sensitive=False, use_regex=False):
            self.called_at.append(time.perf_counter())
            return super().search(query, case_sensitive=case_sensitive, use_regex=use_regex)

    search = _TimedSearch()
    session = _session(search, FakeRowProvider(), debounce_ms=300)

    first = time.perf_counter()
    session.on_query_input("f")
    qtbot.wait(100)
    session.on_query_input("fo")
    qtbot.wait(50)
    session.on_query_input("foo")

    qtbot.waitUntil(lambda: bool(search.calls), timeout=2000)
    assert search.called_at[0] - first >= 0.40
    qtbot.wait(400)
    assert search.queries == ["foo"]


def test_empty_results_announce_empty_window(providers, qtbot):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    search.resolve()
    assert session.visible_range == RowRange(0, 1)

    with qtbot.waitSignal(session.range_changed, timeout=500) as blocker:
        session.replace_results([])
    assert blocker.args == [0, -1]
    assert session.visible_range.is_empty


def test_same_window_after_new_results_is_not_reannounced(providers, qtbot):
    search, rows = providers
    session = _session(search, rows)
    session.run_query("foo")
    search.resolve()

    session.run_query("bar")
    with qtbot.assertNotEmitted(session.range_changed):
        search.resolve()
    # the new rows are still requested
    assert rows.requested[-1] == ["x", "y"]


def test_reveal_uses_fetched_path(providers):
    search, rows = providers
    revealed: list[str] = []
    session = _session(search, rows, revealer=revealed.append)
    session.run_query("foo")
    search.resolve()
    rows.resolve()

    assert session.reveal(0) is True
    assert session.reveal(42) is False
    assert revealed == ["/data/a"]
