"""Dashboard scoring and statistics."""
from datetime import date

from dsa_tracker.gamification import level_from_total_xp
from dsa_tracker.models import MASTERED, Settings
from dsa_tracker.revision import get_completed_today, get_due_today, get_overdue


def get_score_color(score: float) -> str:
    if score >= 80:
        return "green"
    elif score >= 60:
        return "yellow"
    elif score >= 40:
        return "dark_orange"
    return "red"


def get_productivity_score(questions: list, settings: Settings, today: date) -> int:
    """Today's productivity percentage.

    Weighted: completion of due revisions 70%, progress towards the daily
    goal 30%. Nothing due counts as 100.
    """
    due = len(get_due_today(questions, today))
    if due == 0:
        return 100
    completed = len(get_completed_today(questions, today))
    goal = settings.daily_goal or 5
    completion_rate = min(1.0, completed / max(1, due))
    goal_rate = min(1.0, completed / goal)
    return round((completion_rate * 0.7 + goal_rate * 0.3) * 100)


def get_subject_mastery(questions: list) -> list[dict]:
    """Mastered share per subject, most questions first."""
    subjects = {}
    for q in questions:
        row = subjects.setdefault(q.subject, {"subject": q.subject, "total": 0, "mastered": 0})
        row["total"] += 1
        if q.status == MASTERED:
            row["mastered"] += 1
    for row in subjects.values():
        row["percent"] = round(row["mastered"] / row["total"] * 100)
    return sorted(subjects.values(), key=lambda r: (-r["total"], r["subject"]))


def get_summary(store) -> dict:
    questions = store.get_questions()
    stats = store.get_user_stats()
    settings = store.get_settings()
    today = store.today()
    level = level_from_total_xp(stats.total_xp)
    return {
        "total_questions": len(questions),
        "mastered": sum(1 for q in questions if q.status == MASTERED),
        "due_today": len(get_due_today(questions, today)),
        "overdue": len(get_overdue(questions, today)),
        "completed_today": len(get_completed_today(questions, today)),
        "total_revisions": stats.total_revisions,
        "total_xp": stats.total_xp,
        "level": level.level,
        "level_progress": level.progress,
        "current_streak": stats.current_streak,
        "longest_streak": stats.longest_streak,
        "badges": len(stats.badges),
        "productivity": get_productivity_score(questions, settings, today),
    }
