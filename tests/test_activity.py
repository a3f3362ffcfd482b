"""Tests for activity log and daily counter helpers."""
from datetime import date

import pytest

from dsa_tracker.activity import add_daily_xp, bump_daily, heatmap, prepend_bounded, streak_week
from dsa_tracker.models import ActivityLogEntry, DailyLogEntry, Question


def _entry(i):
    return ActivityLogEntry(id=str(i), type="test", text=f"entry {i}", timestamp="t")


def test_prepend_bounded_puts_newest_first():
    log = prepend_bounded([_entry(1)], _entry(2))
    assert [e.id for e in log] == ["2", "1"]


def test_prepend_bounded_truncates():
    log = []
    for i in range(5):
        log = prepend_bounded(log, _entry(i), limit=3)
    assert [e.id for e in log] == ["4", "3", "2"]


def test_bump_daily_creates_day():
    daily = {}
    bump_daily(daily, "2024-03-10", "solved")
    bump_daily(daily, "2024-03-10", "solved")
    assert daily["2024-03-10"] == DailyLogEntry(solved=2)


def test_bump_daily_unknown_kind():
    with pytest.raises(ValueError):
        bump_daily({}, "2024-03-10", "skipped")


def test_add_daily_xp():
    daily = {"2024-03-10": DailyLogEntry(revised=1, xp_earned=5)}
    add_daily_xp(daily, "2024-03-10", 10)
    assert daily["2024-03-10"].xp_earned == 15


def test_streak_week():
    daily = {"2024-03-04": DailyLogEntry(solved=1), "2024-03-10": DailyLogEntry()}
    week = streak_week(daily, date(2024, 3, 10))
    assert [d["date"] for d in week][0] == "2024-03-04"
    assert week[0]["day_name"] == "Mon"
    assert week[0]["active"]
    assert not week[-1]["active"]
    assert [d["is_today"] for d in week].count(True) == 1


def test_heatmap_counts_and_levels():
    questions = [
        Question(name="a", subject="x", date_solved="2024-03-10"),
        Question(name="b", subject="x", date_solved="2024-03-10"),
        Question(name="c", subject="x", date_solved="2023-01-01"),
    ]
    daily = {"2024-03-10": DailyLogEntry(revised=2), "2024-03-09": DailyLogEntry(revised=1)}
    cells = heatmap(questions, daily, date(2024, 3, 10), days=7)
    assert len(cells) == 7
    by_date = {c["date"]: c for c in cells}
    assert by_date["2024-03-10"] == {"date": "2024-03-10", "count": 4, "level": 4}
    assert by_date["2024-03-09"]["level"] == 1
    assert by_date["2024-03-04"]["level"] == 0
