import pytest

from search_viewer.row_engine.records import RowRecord, apply_patch, is_standalone, merge_fetched


def test_from_payload_nested_metadata():
    rec = RowRecord.from_payload(
        {"path": "/a/b.txt", "metadata": {"size": 10, "mtime": 5, "ctime": 3}, "icon": None}
    )
    assert rec == RowRecord(path="/a/b.txt", size=10, mtime=5.0, ctime=3.0)


def test_from_payload_flat_and_string():
    assert RowRecord.from_payload({"path": "/x", "size": 1}).size == 1
    assert RowRecord.from_payload("/only/path") == RowRecord(path="/only/path")
    assert RowRecord.from_payload(None) is None


def test_from_payload_rejects_garbage():
    with pytest.raises(TypeError):
        RowRecord.from_payload(42)


def test_fetch_keeps_icon_from_earlier_patch():
    patched = RowRecord(icon="data:image/png;base64,AAA", partial=True)
    fetched = RowRecord(path="/a", size=1)
    merged = merge_fetched(patched, fetched)
    assert merged.icon == "data:image/png;base64,AAA"
    assert merged.path == "/a"
    assert merged.partial is False


def test_fetch_icon_used_when_slot_has_none():
    merged = merge_fetched(RowRecord(path="/old"), RowRecord(path="/a", icon="fetched"))
    assert merged.icon == "fetched"
    assert merged.path == "/a"


def test_fetch_is_authoritative_for_non_icon_fields():
    existing = RowRecord(path="/a", size=1, icon="p")
    merged = merge_fetched(existing, RowRecord(path="/a", size=99))
    assert merged.size == 99
    assert merged.icon == "p"


def test_apply_patch_is_non_destructive():
    existing = RowRecord(path="/a", size=5, mtime=1.0)
    patched = apply_patch(existing, {"icon": "i"})
    assert patched == RowRecord(path="/a", size=5, mtime=1.0, icon="i")


def test_apply_patch_returns_same_object_when_nothing_changes():
    existing = RowRecord(path="/a", icon="i")
    assert apply_patch(existing, {"icon": "i"}) is existing
    assert apply_patch(existing, {"unknown": 1}) is existing


def test_standalone_fields():
    assert is_standalone({"icon": "i"})
    assert not is_standalone({"icon": "i", "size": 3})
    assert not is_standalone({"size": 3})
    assert not is_standalone({})
