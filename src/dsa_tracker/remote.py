"""Remote per-document stores addressed by collection + document id.

Two backends share one interface: an in-process store (tests, offline demo)
and Redis, where each collection is a hash of JSON documents keyed by id.
Both upsert with merge semantics: fields missing from a write are preserved.
"""
from __future__ import annotations

import json
import logging
import threading
from typing import Protocol

logger = logging.getLogger(__name__)


class RemoteStore(Protocol):
    def set_document(self, collection: str, doc_id: str, data: dict) -> None: ...
    def delete_document(self, collection: str, doc_id: str) -> None: ...
    def fetch_all(self, collection: str) -> list[dict]: ...
    def clear_collection(self, collection: str) -> None: ...


class InMemoryRemoteStore:
    """Thread-safe dict-of-dicts document store."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

    def set_document(self, collection: str, doc_id: str, data: dict) -> None:
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            merged = dict(docs.get(doc_id, {}))
            merged.update(json.loads(json.dumps(data)))
            docs[doc_id] = merged

    def delete_document(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)

    def fetch_all(self, collection: str) -> list[dict]:
        with self._lock:
            return [json.loads(json.dumps(d)) for d in self._collections.get(collection, {}).values()]

    def get_document(self, collection: str, doc_id: str) -> dict | None:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return json.loads(json.dumps(doc)) if doc is not None else None

    def clear_collection(self, collection: str) -> None:
        with self._lock:
            self._collections.pop(collection, None)


class RedisRemoteStore:
    """Wraps a redis.Redis client; one hash per collection.

    Errors propagate to the caller. The sync adapter is the layer that logs
    and drops them.
    """

    def __init__(self, redis_client, prefix: str = "dsa_tracker") -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, collection: str) -> str:
        return f"{self._prefix}:{collection}"

    @staticmethod
    def _decode(raw) -> dict:
        if isinstance(raw, bytes):
            raw = raw.decode()
        return json.loads(raw)

    def set_document(self, collection: str, doc_id: str, data: dict) -> None:
        """Merge ``data`` into the stored document atomically.

        The hash is WATCHed while the current document is read; a concurrent
        write aborts the EXEC and ``transaction`` reruns the merge.
        """
        key = self._key(collection)

        def _merge(pipe) -> None:
            raw = pipe.hget(key, doc_id)
            merged = self._decode(raw) if raw is not None else {}
            merged.update(data)
            pipe.multi()
            pipe.hset(key, doc_id, json.dumps(merged))

        self._redis.transaction(_merge, key)

    def delete_document(self, collection: str, doc_id: str) -> None:
        self._redis.hdel(self._key(collection), doc_id)

    def fetch_all(self, collection: str) -> list[dict]:
        return [self._decode(raw) for raw in self._redis.hvals(self._key(collection))]

    def get_document(self, collection: str, doc_id: str) -> dict | None:
        raw = self._redis.hget(self._key(collection), doc_id)
        return self._decode(raw) if raw is not None else None

    def clear_collection(self, collection: str) -> None:
        self._redis.delete(self._key(collection))


def create_remote_store(url: str, prefix: str = "dsa_tracker") -> RemoteStore | None:
    """Build the remote backend named by ``url``.

    Returns None (local-only mode) when ``url`` is empty or the backend cannot
    be reached.
    """
    if not url:
        logger.info("Remote store: disabled (no remote URL)")
        return None
    if url == "memory://":
        logger.info("Remote store: in-memory")
        return InMemoryRemoteStore()
    if url.startswith(("redis://", "rediss://", "unix://")):
        try:
            import redis
            client = redis.Redis.from_url(url, socket_timeout=5, socket_connect_timeout=5)
            client.ping()
        except Exception as e:
            logger.warning("Remote store: Redis connection failed (%s), running local-only", e)
            return None
        logger.info("Remote store: Redis (%s)", url)
        return RedisRemoteStore(client, prefix=prefix)
    logger.warning("Remote store: unsupported URL %r, running local-only", url)
    return None
