"""Tests for the remote document store backends."""
import json

import fakeredis
import pytest

from dsa_tracker.remote import InMemoryRemoteStore, RedisRemoteStore, create_remote_store


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis()


@pytest.fixture(params=["memory", "redis"])
def backend(request, fake_redis):
    if request.param == "memory":
        return InMemoryRemoteStore()
    return RedisRemoteStore(fake_redis, prefix="test")


def test_set_and_get(backend):
    backend.set_document("questions", "a", {"id": "a", "name": "Two Sum"})
    assert backend.get_document("questions", "a") == {"id": "a", "name": "Two Sum"}
    assert backend.get_document("questions", "missing") is None


def test_set_merges_fields(backend):
    backend.set_document("userStats", "current", {"total_xp": 10, "level": 1})
    backend.set_document("userStats", "current", {"total_xp": 40})
    assert backend.get_document("userStats", "current") == {"total_xp": 40, "level": 1}


def test_fetch_all(backend):
    backend.set_document("questions", "a", {"id": "a"})
    backend.set_document("questions", "b", {"id": "b"})
    assert sorted(d["id"] for d in backend.fetch_all("questions")) == ["a", "b"]
    assert backend.fetch_all("syllabi") == []


def test_delete_document(backend):
    backend.set_document("questions", "a", {"id": "a"})
    backend.delete_document("questions", "a")
    backend.delete_document("questions", "never-existed")
    assert backend.fetch_all("questions") == []


def test_clear_collection(backend):
    backend.set_document("activityLog", "1", {"id": "1"})
    backend.set_document("questions", "a", {"id": "a"})
    backend.clear_collection("activityLog")
    assert backend.fetch_all("activityLog") == []
    assert len(backend.fetch_all("questions")) == 1


def test_redis_uses_prefixed_hash(fake_redis):
    store = RedisRemoteStore(fake_redis, prefix="tracker")
    store.set_document("questions", "a", {"id": "a"})
    assert fake_redis.hexists("tracker:questions", "a")


def test_redis_merge_reruns_after_concurrent_write(fake_redis, monkeypatch):
    store = RedisRemoteStore(fake_redis, prefix="t")
    store.set_document("userStats", "current", {"level": 1})
    decode = RedisRemoteStore._decode
    reads = []

    def _decode_racing_other_device(raw):
        if not reads:
            # another device lands a write between our read and our EXEC
            fake_redis.hset("t:userStats", "current", json.dumps({"level": 1, "badges": ["first_steps"]}))
        reads.append(raw)
        return decode(raw)

    monkeypatch.setattr(RedisRemoteStore, "_decode", staticmethod(_decode_racing_other_device))
    store.set_document("userStats", "current", {"total_xp": 40})
    monkeypatch.undo()
    assert len(reads) == 2
    assert store.get_document("userStats", "current") == {
        "level": 1, "badges": ["first_steps"], "total_xp": 40,
    }


def test_in_memory_returns_copies():
    store = InMemoryRemoteStore()
    store.set_document("questions", "a", {"id": "a", "tags": []})
    doc = store.get_document("questions", "a")
    doc["tags"].append("mutated")
    assert store.get_document("questions", "a")["tags"] == []


def test_create_remote_store_urls():
    assert create_remote_store("") is None
    assert isinstance(create_remote_store("memory://"), InMemoryRemoteStore)
    assert create_remote_store("ftp://example.com") is None


def test_create_remote_store_unreachable_redis_is_local_only():
    # Nothing listens on port 1
    assert create_remote_store("redis://127.0.0.1:1/0") is None
