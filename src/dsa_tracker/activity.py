"""Activity log and per-day counters feeding streak and heatmap views."""
from datetime import date, timedelta

from dsa_tracker.models import ActivityLogEntry, DailyLogEntry

ACTIVITY_LOG_LIMIT = 200
DAILY_KINDS = ("solved", "revised")
DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def prepend_bounded(log: list, entry: ActivityLogEntry, limit: int = ACTIVITY_LOG_LIMIT) -> list:
    """Return ``log`` with ``entry`` first, truncated to the newest ``limit``."""
    return [entry, *log][:limit]


def _day(daily_log: dict, date_key: str) -> DailyLogEntry:
    if date_key not in daily_log:
        daily_log[date_key] = DailyLogEntry()
    return daily_log[date_key]


def bump_daily(daily_log: dict, date_key: str, kind: str) -> DailyLogEntry:
    """Increment the ``kind`` counter for ``date_key``, creating the day lazily."""
    if kind not in DAILY_KINDS:
        raise ValueError(f"Unknown daily activity kind: {kind!r}")
    entry = _day(daily_log, date_key)
    setattr(entry, kind, getattr(entry, kind) + 1)
    return entry


def add_daily_xp(daily_log: dict, date_key: str, amount: int) -> DailyLogEntry:
    entry = _day(daily_log, date_key)
    entry.xp_earned += amount
    return entry


def streak_week(daily_log: dict, today: date) -> list[dict]:
    """Activity flags for the last seven days, oldest first."""
    days = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        entry = daily_log.get(day.isoformat())
        days.append({
            "date": day.isoformat(),
            "day_name": DAY_NAMES[day.weekday()],
            "is_today": offset == 0,
            "active": bool(entry and entry.active),
        })
    return days


def _intensity(count: int, peak: int) -> int:
    if count == 0:
        return 0
    if count <= peak * 0.25:
        return 1
    if count <= peak * 0.5:
        return 2
    if count <= peak * 0.75:
        return 3
    return 4


def heatmap(questions: list, daily_log: dict, today: date, days: int = 365) -> list[dict]:
    """Per-day activity counts over the trailing window.

    A day's count is the questions solved on it plus the revisions logged for
    it. Each cell also carries a 0-4 intensity relative to the busiest day.
    """
    counts: dict[str, int] = {}
    for q in questions:
        if q.date_solved:
            counts[q.date_solved] = counts.get(q.date_solved, 0) + 1
    for date_key, entry in daily_log.items():
        counts[date_key] = counts.get(date_key, 0) + entry.revised
    peak = max([1, *counts.values()])

    cells = []
    start = today - timedelta(days=days - 1)
    for offset in range(days):
        day = (start + timedelta(days=offset)).isoformat()
        count = counts.get(day, 0)
        cells.append({"date": day, "count": count, "level": _intensity(count, peak)})
    return cells
