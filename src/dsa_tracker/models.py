"""Data classes for the tracker domain model."""
from dataclasses import asdict, dataclass, field, fields
from typing import Callable, Optional, Union, get_args, get_origin

DIFFICULTIES = ("Easy", "Medium", "Hard")
STATUSES = ("Solved", "Needs Revision", "Mastered")
MASTERED = "Mastered"
NEEDS_REVISION = "Needs Revision"

DEFAULT_BASE_INTERVALS = [0, 1, 3, 7, 14, 21, 30, 45, 60, 90, 120, 150, 180, 210, 240]


def to_plain(value):
    """Recursively turn records into JSON-ready dicts and lists."""
    if isinstance(value, list):
        return [to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, Record):
        return value.to_dict()
    return value


def _known(cls, data: dict) -> dict:
    """Keep only the keys that are fields of ``cls``."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def _accepts(annotation, value) -> bool:
    """Check a decoded JSON value against a field annotation."""
    if get_origin(annotation) is Union:
        return any(_accepts(arg, value) for arg in get_args(annotation))
    if annotation is type(None):
        return value is None
    if annotation is bool:
        return isinstance(value, bool)
    # bool is an int subclass; JSON true/false is never a count
    if annotation is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if annotation is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if isinstance(annotation, type):
        return isinstance(value, annotation)
    return True


def _type_name(annotation) -> str:
    if get_origin(annotation) is Union:
        return " or ".join(_type_name(arg) for arg in get_args(annotation))
    if annotation is type(None):
        return "null"
    return getattr(annotation, "__name__", str(annotation))


class Record:
    """Mixin giving dataclasses a dict round-trip.

    ``from_dict`` ignores unknown keys and rejects values whose type does not
    match the field annotation.
    """

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict):
        if not isinstance(data, dict):
            raise TypeError(f"{cls.__name__} expects a mapping, got {type(data).__name__}")
        values = _known(cls, data)
        for f in fields(cls):
            if f.name in values and not _accepts(f.type, values[f.name]):
                raise TypeError(
                    f"{cls.__name__}.{f.name} must be {_type_name(f.type)}, "
                    f"got {type(values[f.name]).__name__}"
                )
        return cls(**values)


@dataclass
class RevisionEvent(Record):
    date: str
    quality: int
    time_taken: int = 0
    notes: str = ""
    cycle: int = 0


@dataclass
class Question(Record):
    name: str
    subject: str
    difficulty: str = "Easy"
    status: str = "Solved"
    id: str = ""
    time_taken: Optional[int] = None
    revision_cycle: int = 0
    revision_history: list = field(default_factory=list)
    ease_factor: float = 2.5
    streak: int = 0
    xp_earned: int = 0
    next_revision_date: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    platform: str = ""
    link: str = ""
    tags: list = field(default_factory=list)
    notes: str = ""
    date_solved: Optional[str] = None
    last_revision_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        question = super().from_dict(data)
        question.revision_history = [
            e if isinstance(e, RevisionEvent) else RevisionEvent.from_dict(e)
            for e in question.revision_history or []
        ]
        return question

    @property
    def is_mastered(self) -> bool:
        return self.status == MASTERED


@dataclass
class UserStats(Record):
    total_xp: int = 0
    level: int = 1
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: Optional[str] = None
    badges: list = field(default_factory=list)
    total_revisions: int = 0
    daily_goal: int = 5
    updated_at: Optional[str] = None


@dataclass
class Settings(Record):
    total_cycles: int = 15
    daily_goal: int = 5
    base_intervals: list = field(default_factory=lambda: list(DEFAULT_BASE_INTERVALS))
    notifications_enabled: bool = False
    overdue_alerts: bool = True
    updated_at: Optional[str] = None


@dataclass
class ActivityLogEntry(Record):
    id: str
    type: str
    text: str
    timestamp: str


@dataclass
class DailyLogEntry(Record):
    solved: int = 0
    revised: int = 0
    xp_earned: int = 0

    @property
    def active(self) -> bool:
        return self.solved > 0 or self.revised > 0


@dataclass
class CalendarEntry(Record):
    date_key: str
    important: bool = False
    notes: str = ""
    tasks: list = field(default_factory=list)
    last_modified: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.important and not self.notes.strip() and not self.tasks


@dataclass
class Topic(Record):
    name: str
    completed: bool = False
    completed_date: Optional[str] = None


@dataclass
class Syllabus(Record):
    name: str
    stream: str = ""
    id: str = ""
    topics: list = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Syllabus":
        syllabus = super().from_dict(data)
        syllabus.topics = [
            t if isinstance(t, Topic) else Topic.from_dict(t) for t in syllabus.topics or []
        ]
        return syllabus

    @property
    def progress(self) -> float:
        if not self.topics:
            return 0.0
        return sum(1 for t in self.topics if t.completed) / len(self.topics)


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    icon: str
    description: str
    check: Callable = field(compare=False, repr=False)
