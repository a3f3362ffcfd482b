from datetime import datetime, timedelta, timezone

import pytest

from dsa_tracker.gamification import GamificationEngine
from dsa_tracker.remote import InMemoryRemoteStore
from dsa_tracker.store import RecordStore
from dsa_tracker.sync import SyncAdapter


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_tracker.db")
    return db_path


class FixedClock:
    """Settable clock; every call returns the current fixed instant."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class RecordingHooks:
    def __init__(self):
        self.toasts = []
        self.confetti = 0
        self.dots = []

    def on_toast(self, message, severity="info"):
        self.toasts.append((message, severity))

    def on_confetti(self):
        self.confetti += 1

    def on_notification_dot_update(self, has_pending):
        self.dots.append(has_pending)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def hooks():
    return RecordingHooks()


@pytest.fixture
def remote():
    return InMemoryRemoteStore()


@pytest.fixture
def sync(remote):
    adapter = SyncAdapter(remote)
    yield adapter
    adapter.close()


@pytest.fixture
def store(tmp_db, clock):
    """A local-only store on a fixed clock."""
    return RecordStore(tmp_db, clock=clock)


@pytest.fixture
def synced_store(tmp_db, clock, sync):
    """A store wired to an in-memory remote."""
    return RecordStore(tmp_db, sync=sync, clock=clock)


@pytest.fixture
def engine(store, hooks):
    return GamificationEngine(store, hooks)
