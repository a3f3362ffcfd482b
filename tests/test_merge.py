"""Tests for last-writer-wins merging."""
from dsa_tracker.merge import is_newer, merge_items, parse_timestamp


def _by_id(items):
    return {item["id"]: item for item in items}


def test_parse_timestamp_accepts_zulu():
    assert parse_timestamp("2024-03-10T09:30:00.000Z") == parse_timestamp("2024-03-10T09:30:00+00:00")


def test_parse_timestamp_rejects_garbage():
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp(12345) is None


def test_is_newer_requires_both_stamps():
    assert not is_newer({"updated_at": "2024-03-10T10:00:00Z"}, {})
    assert not is_newer({}, {"updated_at": "2024-03-10T10:00:00Z"})


def test_newer_remote_replaces_whole_record():
    local = [{"id": "a", "name": "old", "notes": "local only", "updated_at": "2024-03-10T09:00:00Z"}]
    remote = [{"id": "a", "name": "new", "updated_at": "2024-03-10T10:00:00Z"}]
    merged = _by_id(merge_items(local, remote))
    assert merged["a"] == remote[0]


def test_older_remote_is_ignored():
    local = [{"id": "a", "name": "local", "updated_at": "2024-03-10T10:00:00Z"}]
    remote = [{"id": "a", "name": "remote", "updated_at": "2024-03-10T09:00:00Z"}]
    assert _by_id(merge_items(local, remote))["a"]["name"] == "local"


def test_equal_timestamps_keep_local():
    local = [{"id": "a", "name": "local", "updated_at": "2024-03-10T10:00:00Z"}]
    remote = [{"id": "a", "name": "remote", "updated_at": "2024-03-10T10:00:00Z"}]
    assert _by_id(merge_items(local, remote))["a"]["name"] == "local"


def test_missing_timestamp_keeps_local():
    local = [{"id": "a", "name": "local"}]
    remote = [{"id": "a", "name": "remote", "updated_at": "2024-03-10T10:00:00Z"}]
    assert _by_id(merge_items(local, remote))["a"]["name"] == "local"


def test_union_of_both_sides():
    local = [{"id": "a"}, {"id": "b"}]
    remote = [{"id": "b"}, {"id": "c"}]
    assert set(_by_id(merge_items(local, remote))) == {"a", "b", "c"}


def test_items_without_id_are_skipped():
    merged = merge_items([{"name": "no id"}], [{"id": None}, {"id": "x"}])
    assert [item["id"] for item in merged] == ["x"]


def test_merge_is_idempotent():
    local = [{"id": "a", "updated_at": "2024-03-10T09:00:00Z"}, {"id": "b"}]
    remote = [{"id": "a", "updated_at": "2024-03-10T11:00:00Z"}, {"id": "c"}]
    once = merge_items(local, remote)
    twice = merge_items(once, remote)
    assert _by_id(once) == _by_id(twice)


def test_conflict_resolution_is_order_independent():
    older = {"id": "a", "v": 1, "updated_at": "2024-03-10T09:00:00Z"}
    newer = {"id": "a", "v": 2, "updated_at": "2024-03-10T11:00:00Z"}
    assert _by_id(merge_items([older], [newer])) == _by_id(merge_items([newer], [older]))
