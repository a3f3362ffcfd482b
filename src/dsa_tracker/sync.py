"""Fire-and-forget propagation of local mutations to the remote store.

Outbound writes go through a bounded queue drained by one daemon worker
thread. Callers never wait on the network: a push returns as soon as it is
queued, a full queue drops the push with a warning, and a failed remote call
is logged and never retried. Every push carries a full snapshot of the record,
so pushes are independent idempotent upserts and their completion order is
irrelevant.

The inbound direction is a one-shot ``pull_and_merge`` run at startup.
"""
from __future__ import annotations

import json
import logging
import queue
import threading
from typing import Callable

from dsa_tracker.merge import merge_items
from dsa_tracker.remote import RemoteStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_PENDING = 256

_STOP = object()


class SyncAdapter:
    """Outbound sync queue plus the startup pull-and-merge.

    Args:
        remote: Remote document store, or None for local-only mode where
            every operation is a no-op.
        max_pending: Queue bound; pushes beyond it are dropped.
    """

    def __init__(self, remote: RemoteStore | None, max_pending: int = DEFAULT_MAX_PENDING):
        self.remote = remote
        self._queue: queue.Queue = queue.Queue(maxsize=max_pending)
        self._worker: threading.Thread | None = None
        self._start_lock = threading.Lock()
        # Queued tasks not yet executed; guarded by _idle
        self._pending = 0
        self._idle = threading.Condition()
        self.dropped = 0
        self.failed = 0

    @property
    def enabled(self) -> bool:
        return self.remote is not None

    @property
    def pending(self) -> int:
        with self._idle:
            return self._pending

    # Outbound

    def push_item(self, collection: str, item_id: str, data: dict) -> None:
        """Queue an upsert of ``data`` as document ``collection/item_id``."""
        if not self.enabled:
            return
        try:
            payload = json.loads(json.dumps(data))
        except (TypeError, ValueError) as e:
            logger.error("Sync: cannot encode %s/%s: %s", collection, item_id, e)
            return
        self._submit("set", collection, item_id, payload)

    def delete_item(self, collection: str, item_id: str) -> None:
        """Queue a best-effort remote delete."""
        if not self.enabled:
            return
        self._submit("delete", collection, item_id, None)

    def clear_collection(self, collection: str) -> None:
        """Queue a wipe of a whole remote collection."""
        if not self.enabled:
            return
        self._submit("clear", collection, None, None)

    def _submit(self, op: str, collection: str, item_id, payload) -> None:
        self._ensure_worker()
        with self._idle:
            try:
                self._queue.put_nowait((op, collection, item_id, payload))
            except queue.Full:
                self.dropped += 1
                logger.warning("Sync: queue full, dropping %s of %s/%s", op, collection, item_id)
                return
            self._pending += 1

    def _ensure_worker(self) -> None:
        with self._start_lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(target=self._run, name="dsa-sync", daemon=True)
                self._worker.start()

    def _run(self) -> None:
        while True:
            task = self._queue.get()
            if task is _STOP:
                return
            try:
                self._execute(*task)
            finally:
                with self._idle:
                    self._pending -= 1
                    if self._pending == 0:
                        self._idle.notify_all()

    def _execute(self, op: str, collection: str, item_id, payload) -> None:
        try:
            if op == "set":
                self.remote.set_document(collection, item_id, payload)
                logger.debug("Sync: pushed %s/%s", collection, item_id)
            elif op == "delete":
                self.remote.delete_document(collection, item_id)
                logger.debug("Sync: deleted %s/%s", collection, item_id)
            elif op == "clear":
                self.remote.clear_collection(collection)
                logger.debug("Sync: cleared %s", collection)
        except Exception as e:
            self.failed += 1
            logger.warning("Sync: remote %s failed (%s/%s): %s", op, collection, item_id, e)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until queued work is done. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    def close(self, timeout: float | None = 5.0) -> None:
        """Drain the queue and stop the worker thread."""
        if self._worker is None or not self._worker.is_alive():
            return
        self.flush(timeout)
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning("Sync: worker did not drain before close")
            return
        self._worker.join(timeout)
        self._worker = None

    # Inbound

    def pull_and_merge(
        self,
        collection: str,
        local_items: list[dict],
        persist: Callable[[list[dict]], object],
        key: str = "id",
    ) -> bool:
        """Pull ``collection`` once and reconcile it with ``local_items``.

        An empty remote collection is bootstrapped from the local set.
        Otherwise the merged set is handed to ``persist`` and pushed back so
        both sides converge on the same superset.

        Returns:
            True when remote data was merged into local state.
        """
        if not self.enabled:
            return False
        try:
            remote_items = self.remote.fetch_all(collection)
        except Exception as e:
            logger.warning("Sync: pull of %s failed: %s", collection, e)
            return False

        if not remote_items:
            logger.info("Sync: no remote %s, pushing %d local items", collection, len(local_items))
            for item in local_items:
                self.push_item(collection, item[key], item)
            return False

        logger.info("Sync: loaded %d remote %s", len(remote_items), collection)
        merged = merge_items(local_items, remote_items, key=key)
        try:
            persist(merged)
        except Exception as e:
            logger.error("Sync: persisting merged %s failed: %s", collection, e)
            return False
        for item in merged:
            self.push_item(collection, item[key], item)
        return True
