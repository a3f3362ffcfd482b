"""Versioned export/import document.

A snapshot carries every entity family plus ``version`` and ``exported_at``.
Parsing validates all families into typed records before the store touches
anything, so a bad document is rejected as a whole. Older versions are
upgraded one step at a time through ``MIGRATIONS``.
"""
import json
import re
from dataclasses import dataclass
from typing import Optional

from dsa_tracker.models import (
    ActivityLogEntry, CalendarEntry, DailyLogEntry, Question, Settings, Syllabus, UserStats,
    to_plain,
)

SCHEMA_VERSION = 2

FAMILIES = (
    "questions", "user_stats", "activity_log", "settings",
    "daily_log", "calendar_entries", "syllabi",
)


class SnapshotError(ValueError):
    """Raised when a snapshot document cannot be imported."""


@dataclass
class Snapshot:
    version: int = SCHEMA_VERSION
    exported_at: Optional[str] = None
    questions: Optional[list] = None
    user_stats: Optional[UserStats] = None
    activity_log: Optional[list] = None
    settings: Optional[Settings] = None
    daily_log: Optional[dict] = None
    calendar_entries: Optional[dict] = None
    syllabi: Optional[list] = None

    def present(self) -> list[str]:
        return [name for name in FAMILIES if getattr(self, name) is not None]


def render_snapshot(snapshot: Snapshot) -> str:
    document = {"version": snapshot.version, "exported_at": snapshot.exported_at}
    for name in snapshot.present():
        document[name] = to_plain(getattr(snapshot, name))
    return json.dumps(document, indent=2, ensure_ascii=False)


# Migrations

_V1_FAMILIES = {
    "questions": "questions",
    "userStats": "user_stats",
    "activityLog": "activity_log",
    "settings": "settings",
    "dailyLog": "daily_log",
    "calendarEntries": "calendar_entries",
    "syllabi": "syllabi",
}
_V1_FIELD_RENAMES = {"platformLink": "link"}


def _snake(name: str) -> str:
    if name in _V1_FIELD_RENAMES:
        return _V1_FIELD_RENAMES[name]
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name).lower()


def _snake_record(record):
    if not isinstance(record, dict):
        return record
    out = {}
    for key, value in record.items():
        if isinstance(value, list):
            value = [_snake_record(v) for v in value]
        out[_snake(key)] = value
    return out


def _migrate_v1(data: dict) -> dict:
    """1.0 exports used camelCase families and fields."""
    out = {"version": 2, "exported_at": data.get("exportDate")}
    for old, new in _V1_FAMILIES.items():
        if old not in data or data[old] is None:
            continue
        value = data[old]
        if new in ("daily_log", "calendar_entries") and isinstance(value, dict):
            value = {day: _snake_record(entry) for day, entry in value.items()}
        elif isinstance(value, list):
            value = [_snake_record(item) for item in value]
        else:
            value = _snake_record(value)
        out[new] = value
    return out


MIGRATIONS = {1: _migrate_v1}


def _version_of(data: dict) -> int:
    version = data.get("version", 1)
    if version in ("1.0", "1", 1):
        return 1
    if isinstance(version, int) and not isinstance(version, bool):
        return version
    raise SnapshotError(f"Unrecognised snapshot version: {version!r}")


def migrate(data: dict) -> dict:
    version = _version_of(data)
    if version > SCHEMA_VERSION:
        raise SnapshotError(f"Snapshot version {version} is newer than supported {SCHEMA_VERSION}")
    while version < SCHEMA_VERSION:
        data = MIGRATIONS[version](data)
        version += 1
    return data


# Parsing

def _expect(value, kind, family: str):
    if not isinstance(value, kind):
        raise SnapshotError(f"{family} must be a {kind.__name__}, got {type(value).__name__}")
    return value


def _parse_questions(value) -> list:
    questions = [Question.from_dict(item) for item in _expect(value, list, "questions")]
    seen = set()
    for q in questions:
        if not q.id:
            raise SnapshotError(f"question {q.name!r} has no id")
        if q.id in seen:
            raise SnapshotError(f"duplicate question id {q.id!r}")
        seen.add(q.id)
    return questions


def _parse_syllabi(value) -> list:
    syllabi = [Syllabus.from_dict(item) for item in _expect(value, list, "syllabi")]
    for s in syllabi:
        if not s.id:
            raise SnapshotError(f"syllabus {s.name!r} has no id")
    return syllabi


def _parse_calendar(value) -> dict:
    entries = {}
    for day, entry in _expect(value, dict, "calendar_entries").items():
        entry = dict(_expect(entry, dict, "calendar entry"))
        entry.setdefault("date_key", day)
        entries[day] = CalendarEntry.from_dict(entry)
    return entries


_PARSERS = {
    "questions": _parse_questions,
    "user_stats": lambda v: UserStats.from_dict(_expect(v, dict, "user_stats")),
    "activity_log": lambda v: [ActivityLogEntry.from_dict(e) for e in _expect(v, list, "activity_log")],
    "settings": lambda v: Settings.from_dict(_expect(v, dict, "settings")),
    "daily_log": lambda v: {
        day: DailyLogEntry.from_dict(entry) for day, entry in _expect(v, dict, "daily_log").items()
    },
    "calendar_entries": _parse_calendar,
    "syllabi": _parse_syllabi,
}


def parse_snapshot(text: str) -> Snapshot:
    """Decode, migrate and validate a snapshot document.

    Raises:
        SnapshotError: The document is not valid JSON, has an unsupported
            version, or any family fails validation.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
    data = migrate(_expect(data, dict, "snapshot"))

    snapshot = Snapshot(version=SCHEMA_VERSION, exported_at=data.get("exported_at"))
    for name in FAMILIES:
        if data.get(name) is None:
            continue
        try:
            setattr(snapshot, name, _PARSERS[name](data[name]))
        except SnapshotError:
            raise
        except (TypeError, ValueError, AttributeError) as e:
            raise SnapshotError(f"Invalid {name}: {e}") from e
    return snapshot
