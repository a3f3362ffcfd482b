"""Domain repository over the local key-value store.

The store is the only owner of persisted state. Every write lands locally
first and returns synchronously; the full updated record is then handed to
the sync adapter for a deferred remote upsert.
"""
import logging
import random
import string
import threading
import time
from datetime import date, datetime
from typing import Callable, Optional

from dsa_tracker.activity import add_daily_xp, bump_daily, prepend_bounded
from dsa_tracker.db import DEFAULT_DB_PATH, delete_keys, init_db, load, save, save_many
from dsa_tracker.models import (
    ActivityLogEntry, CalendarEntry, DailyLogEntry, Question, Settings, Syllabus, Topic,
    UserStats, to_plain,
)
from dsa_tracker.revision import calculate_next_date
from dsa_tracker.snapshot import Snapshot, SnapshotError, parse_snapshot, render_snapshot
from dsa_tracker.sync import SyncAdapter

logger = logging.getLogger(__name__)

KEYS = {
    "questions": "dsa_questions",
    "user_stats": "dsa_user_stats",
    "activity_log": "dsa_activity_log",
    "settings": "dsa_settings",
    "daily_log": "dsa_daily_log",
    "calendar_entries": "dsa_calendar_entries",
    "syllabi": "dsa_syllabi",
}

COLLECTIONS = {
    "questions": "questions",
    "user_stats": "userStats",
    "activity_log": "activityLog",
    "settings": "settings",
    "daily_log": "dailyLog",
    "calendar_entries": "calendarEntries",
    "syllabi": "syllabi",
}

SINGLETON_ID = "current"

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_BASE36[r])
    return "".join(reversed(digits)) or "0"


def generate_id() -> str:
    """Millisecond timestamp in base 36 followed by six random base-36 chars."""
    suffix = "".join(random.choices(_BASE36, k=6))
    return _base36(int(time.time() * 1000)) + suffix


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _date_key(value) -> str:
    return value.isoformat() if isinstance(value, date) else str(value)


class RecordStore:
    """CRUD over questions, stats, settings, logs, calendar entries and syllabi.

    Args:
        db_path: SQLite database file holding the local store.
        sync: Outbound sync adapter; defaults to a local-only adapter.
        clock: Returns the current aware datetime. Injected by tests.
    """

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        sync: Optional[SyncAdapter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db_path = db_path
        self.sync = sync or SyncAdapter(None)
        self.clock = clock or _local_now
        self._lock = threading.RLock()
        init_db(db_path)

    # Time

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.now().date()

    def timestamp(self) -> str:
        return self.now().isoformat(timespec="milliseconds")

    # Typed loading

    def _load_list(self, family: str, cls) -> list:
        raw = load(self.db_path, KEYS[family], list)
        if not isinstance(raw, list):
            logger.warning("Store: %s is not a list, using empty default", family)
            return []
        items = []
        for item in raw:
            try:
                items.append(cls.from_dict(item))
            except (TypeError, ValueError) as e:
                logger.warning("Store: skipping unreadable %s entry: %s", family, e)
        return items

    def _load_map(self, family: str, cls) -> dict:
        raw = load(self.db_path, KEYS[family], dict)
        if not isinstance(raw, dict):
            logger.warning("Store: %s is not a mapping, using empty default", family)
            return {}
        items = {}
        for key, item in raw.items():
            try:
                items[key] = cls.from_dict(item)
            except (TypeError, ValueError) as e:
                logger.warning("Store: skipping unreadable %s entry %s: %s", family, key, e)
        return items

    def _load_record(self, family: str, cls):
        raw = load(self.db_path, KEYS[family], dict)
        try:
            return cls.from_dict(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Store: unreadable %s, using defaults: %s", family, e)
            return cls()

    def _save(self, family: str, value) -> bool:
        return save(self.db_path, KEYS[family], to_plain(value))

    def _push(self, family: str, item_id: str, record) -> None:
        self.sync.push_item(COLLECTIONS[family], item_id, to_plain(record))

    # Questions

    def get_questions(self) -> list[Question]:
        return self._load_list("questions", Question)

    def save_questions(self, questions: list) -> None:
        """Replace the local question set without pushing."""
        self._save("questions", questions)

    def get_question_by_id(self, question_id: str) -> Optional[Question]:
        for q in self.get_questions():
            if q.id == question_id:
                return q
        return None

    def add_question(self, question) -> Question:
        """Store a new question with a fresh id, timestamps and revision state."""
        if isinstance(question, dict):
            question = Question.from_dict(question)
        now = self.timestamp()
        question.id = generate_id()
        question.created_at = now
        question.updated_at = now
        question.revision_cycle = 0
        question.revision_history = []
        question.ease_factor = 2.5
        question.streak = 0
        question.xp_earned = 0
        question.next_revision_date = calculate_next_date(question, self.get_settings(), self.today())

        with self._lock:
            questions = self.get_questions()
            questions.append(question)
            self.save_questions(questions)
        self._push("questions", question.id, question)
        self.add_activity("add", f'Added "{question.name}" ({question.subject})')
        return question

    def update_question(self, question_id: str, patch: dict) -> Optional[Question]:
        """Apply ``patch`` and re-stamp ``updated_at``. Returns None if not found."""
        patch = {k: v for k, v in to_plain(dict(patch)).items() if k not in ("id", "created_at")}
        with self._lock:
            questions = self.get_questions()
            for idx, q in enumerate(questions):
                if q.id == question_id:
                    break
            else:
                return None
            data = q.to_dict()
            data.update(patch)
            data["updated_at"] = self.timestamp()
            updated = Question.from_dict(data)
            questions[idx] = updated
            self.save_questions(questions)
        self._push("questions", question_id, updated)
        return updated

    def delete_question(self, question_id: str) -> bool:
        with self._lock:
            questions = self.get_questions()
            remaining = [q for q in questions if q.id != question_id]
            if len(remaining) == len(questions):
                return False
            self.save_questions(remaining)
        self.sync.delete_item(COLLECTIONS["questions"], question_id)
        self.add_activity("delete", "Deleted a question")
        return True

    # User stats

    def get_user_stats(self) -> UserStats:
        return self._load_record("user_stats", UserStats)

    def save_user_stats(self, stats: UserStats) -> UserStats:
        stats.longest_streak = max(stats.longest_streak, stats.current_streak)
        stats.updated_at = self.timestamp()
        self._save("user_stats", stats)
        self._push("user_stats", SINGLETON_ID, stats)
        return stats

    def modify_user_stats(self, mutator: Callable[[UserStats], object]) -> UserStats:
        """Read, mutate and save the stats record under the store lock.

        A mutator returning False leaves the record unsaved and unpushed.
        """
        with self._lock:
            stats = self.get_user_stats()
            if mutator(stats) is False:
                return stats
            return self.save_user_stats(stats)

    def update_user_stats(self, **changes) -> UserStats:
        unknown = [k for k in changes if k not in UserStats.__dataclass_fields__]
        if unknown:
            raise TypeError(f"Unknown UserStats fields: {', '.join(unknown)}")

        def _apply(stats):
            for key, value in changes.items():
                setattr(stats, key, value)

        return self.modify_user_stats(_apply)

    # Settings

    def get_settings(self) -> Settings:
        return self._load_record("settings", Settings)

    def save_settings(self, settings: Settings) -> Settings:
        settings.updated_at = self.timestamp()
        self._save("settings", settings)
        self._push("settings", SINGLETON_ID, settings)
        return settings

    # Activity log

    def get_activity_log(self) -> list[ActivityLogEntry]:
        return self._load_list("activity_log", ActivityLogEntry)

    def add_activity(self, activity_type: str, text: str) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            id=generate_id(), type=activity_type, text=text, timestamp=self.timestamp(),
        )
        with self._lock:
            self._save("activity_log", prepend_bounded(self.get_activity_log(), entry))
        self._push("activity_log", entry.id, entry)
        return entry

    # Daily log

    def get_daily_log(self) -> dict[str, DailyLogEntry]:
        return self._load_map("daily_log", DailyLogEntry)

    def _update_daily(self, day, apply) -> DailyLogEntry:
        date_key = _date_key(day)
        with self._lock:
            log = self.get_daily_log()
            entry = apply(log, date_key)
            self._save("daily_log", log)
        self._push("daily_log", date_key, entry)
        return entry

    def log_daily_activity(self, day, kind: str) -> DailyLogEntry:
        """Count one ``solved`` or ``revised`` event on ``day``."""
        return self._update_daily(day, lambda log, key: bump_daily(log, key, kind))

    def add_daily_xp(self, day, amount: int) -> DailyLogEntry:
        return self._update_daily(day, lambda log, key: add_daily_xp(log, key, amount))

    # Calendar

    def get_calendar_entries(self) -> dict[str, CalendarEntry]:
        return self._load_map("calendar_entries", CalendarEntry)

    def get_calendar_entry(self, day) -> Optional[CalendarEntry]:
        return self.get_calendar_entries().get(_date_key(day))

    def save_calendar_entry(self, day, important: bool = False, notes: str = "", tasks=None) -> Optional[CalendarEntry]:
        """Save the entry for ``day``; an entry with nothing in it is deleted instead."""
        date_key = _date_key(day)
        entry = CalendarEntry(
            date_key=date_key, important=bool(important), notes=notes or "",
            tasks=list(tasks or []), last_modified=self.timestamp(),
        )
        if entry.is_empty():
            self.delete_calendar_entry(date_key)
            return None
        with self._lock:
            entries = self.get_calendar_entries()
            entries[date_key] = entry
            self._save("calendar_entries", entries)
        self._push("calendar_entries", date_key, entry)
        return entry

    def delete_calendar_entry(self, day) -> bool:
        date_key = _date_key(day)
        with self._lock:
            entries = self.get_calendar_entries()
            if entries.pop(date_key, None) is None:
                return False
            self._save("calendar_entries", entries)
        self.sync.delete_item(COLLECTIONS["calendar_entries"], date_key)
        return True

    # Syllabi

    def get_syllabi(self) -> list[Syllabus]:
        return self._load_list("syllabi", Syllabus)

    def get_syllabus(self, syllabus_id: str) -> Optional[Syllabus]:
        for s in self.get_syllabi():
            if s.id == syllabus_id:
                return s
        return None

    def add_syllabus(self, name: str, stream: str = "", topics=()) -> Syllabus:
        now = self.timestamp()
        syllabus = Syllabus(
            id=generate_id(), name=name, stream=stream,
            topics=[t if isinstance(t, Topic) else Topic(name=t) for t in topics],
            created_at=now, updated_at=now,
        )
        with self._lock:
            syllabi = self.get_syllabi()
            syllabi.append(syllabus)
            self._save("syllabi", syllabi)
        self._push("syllabi", syllabus.id, syllabus)
        return syllabus

    def _modify_syllabus(self, syllabus_id: str, mutate) -> Optional[Syllabus]:
        with self._lock:
            syllabi = self.get_syllabi()
            for syllabus in syllabi:
                if syllabus.id == syllabus_id:
                    break
            else:
                return None
            if mutate(syllabus) is False:
                return None
            syllabus.updated_at = self.timestamp()
            self._save("syllabi", syllabi)
        self._push("syllabi", syllabus_id, syllabus)
        return syllabus

    def update_syllabus(self, syllabus_id: str, patch: dict) -> Optional[Syllabus]:
        def _apply(syllabus):
            for key in ("name", "stream"):
                if key in patch:
                    setattr(syllabus, key, patch[key])

        return self._modify_syllabus(syllabus_id, _apply)

    def delete_syllabus(self, syllabus_id: str) -> bool:
        with self._lock:
            syllabi = self.get_syllabi()
            remaining = [s for s in syllabi if s.id != syllabus_id]
            if len(remaining) == len(syllabi):
                return False
            self._save("syllabi", remaining)
        self.sync.delete_item(COLLECTIONS["syllabi"], syllabus_id)
        return True

    def add_topic(self, syllabus_id: str, name: str) -> Optional[Syllabus]:
        return self._modify_syllabus(syllabus_id, lambda s: s.topics.append(Topic(name=name)))

    def toggle_topic(self, syllabus_id: str, index: int) -> Optional[Syllabus]:
        """Flip a topic's completion. Unknown syllabus or index returns None."""
        today = self.today().isoformat()

        def _toggle(syllabus):
            if not 0 <= index < len(syllabus.topics):
                return False
            topic = syllabus.topics[index]
            topic.completed = not topic.completed
            topic.completed_date = today if topic.completed else None

        return self._modify_syllabus(syllabus_id, _toggle)

    def delete_topic(self, syllabus_id: str, index: int) -> Optional[Syllabus]:
        def _delete(syllabus):
            if not 0 <= index < len(syllabus.topics):
                return False
            del syllabus.topics[index]

        return self._modify_syllabus(syllabus_id, _delete)

    # Export / import

    def snapshot(self) -> Snapshot:
        return Snapshot(
            exported_at=self.timestamp(),
            questions=self.get_questions(),
            user_stats=self.get_user_stats(),
            activity_log=self.get_activity_log(),
            settings=self.get_settings(),
            daily_log=self.get_daily_log(),
            calendar_entries=self.get_calendar_entries(),
            syllabi=self.get_syllabi(),
        )

    def export_snapshot(self) -> str:
        return render_snapshot(self.snapshot())

    def import_snapshot(self, text: str) -> bool:
        """Replace every family present in ``text``.

        Returns False, with local state untouched, if the document is
        malformed or cannot be written.
        """
        try:
            snapshot = parse_snapshot(text)
        except SnapshotError as e:
            logger.error("Import failed: %s", e)
            return False

        values = {KEYS[name]: to_plain(getattr(snapshot, name)) for name in snapshot.present()}
        with self._lock:
            if not save_many(self.db_path, values):
                return False
        for q in snapshot.questions or []:
            self._push("questions", q.id, q)
        logger.info("Imported %s", ", ".join(snapshot.present()) or "nothing")
        return True

    def reset_all(self) -> None:
        """Clear the local store and schedule a wipe of every remote collection."""
        for collection in COLLECTIONS.values():
            self.sync.clear_collection(collection)
        with self._lock:
            delete_keys(self.db_path, KEYS.values())

    # Remote

    def sync_from_remote(self) -> bool:
        """One-shot pull-and-merge of the question set; True if remote data merged."""
        local = [q.to_dict() for q in self.get_questions()]

        def _persist(items):
            questions = []
            for item in items:
                try:
                    questions.append(Question.from_dict(item))
                except (TypeError, ValueError) as e:
                    logger.warning("Store: dropping unreadable remote question: %s", e)
            with self._lock:
                self.save_questions(questions)

        return self.sync.pull_and_merge(COLLECTIONS["questions"], local, _persist)
