"""Spaced revision scheduling (modified SM-2).

Intervals come from the configured base table, one entry per revision cycle,
scaled by the question's ease factor relative to the 2.5 default.
"""
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Optional

from dsa_tracker.models import MASTERED, NEEDS_REVISION, Question, RevisionEvent, Settings

NEW_QUESTION_XP = {"Easy": 5, "Medium": 10, "Hard": 15}
REVISION_BASE_XP = {"Easy": 10, "Medium": 15, "Hard": 25}
DIFFICULTY_WEIGHT = {"Easy": 1, "Medium": 2, "Hard": 3}
EXTRAPOLATION_GROWTH = 1.5
MIN_EASE = 1.3


@dataclass
class RevisionResult:
    question: Question
    xp_earned: int
    new_cycle: int
    total_cycles: int
    mastered: bool


def update_ease_factor(ease_factor: float, quality: int) -> float:
    """SM-2 ease update: EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02)).

    Args:
        ease_factor: Current ease factor.
        quality: Recall rating, clamped to 1-5.

    Returns:
        New ease factor, rounded to two decimals, never below 1.3.
    """
    q = max(1, min(5, quality))
    new_ef = ease_factor + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
    return max(MIN_EASE, round(new_ef, 2))


def _base_interval(cycle: int, base_intervals: list) -> int:
    if cycle < len(base_intervals):
        return base_intervals[cycle]
    # Past the table: grow the last known interval geometrically
    last = base_intervals[-1]
    return round(last * EXTRAPOLATION_GROWTH ** (cycle - len(base_intervals) + 1))


def calculate_next_date(question: Question, settings: Settings, today: date) -> Optional[str]:
    """Next revision date as an ISO string, or None once every cycle is done."""
    cycle = question.revision_cycle or 0
    if cycle >= settings.total_cycles:
        return None
    base_intervals = settings.base_intervals or Settings().base_intervals
    ef = question.ease_factor or 2.5
    interval = max(1, round(_base_interval(cycle, base_intervals) * (ef / 2.5)))

    anchor = question.last_revision_date or question.date_solved
    start = date.fromisoformat(anchor) if anchor else today
    return (start + timedelta(days=interval)).isoformat()


def calculate_revision_xp(quality: int, difficulty: str, cycle: int) -> int:
    xp = REVISION_BASE_XP.get(difficulty, 10)
    xp += (quality - 3) * 3
    xp += (cycle // 3) * 2
    return max(5, xp)


def complete_revision(
    store,
    question_id: str,
    quality: int,
    time_taken: int = 0,
    notes: str = "",
    today: Optional[date] = None,
) -> Optional[RevisionResult]:
    """Record a revision of ``question_id`` and reschedule it.

    A rating below 3 steps the cycle back instead of advancing it. Reaching
    the configured cycle count marks the question mastered.

    Returns:
        The revision outcome, or None when the question does not exist.
    """
    question = store.get_question_by_id(question_id)
    if question is None:
        return None
    settings = store.get_settings()
    today = today or store.today()
    today_str = today.isoformat()

    new_cycle = question.revision_cycle + 1
    if quality < 3:
        new_cycle = max(0, question.revision_cycle - 1)
    total_cycles = settings.total_cycles

    status = question.status
    if new_cycle >= total_cycles:
        status = MASTERED
    elif quality < 3:
        status = NEEDS_REVISION

    xp = calculate_revision_xp(quality, question.difficulty, new_cycle)
    event = RevisionEvent(
        date=today_str, quality=quality, time_taken=time_taken or 0,
        notes=notes or "", cycle=question.revision_cycle + 1,
    )
    updates = {
        "ease_factor": update_ease_factor(question.ease_factor or 2.5, quality),
        "revision_cycle": min(new_cycle, total_cycles),
        "revision_history": [*question.revision_history, event],
        "last_revision_date": today_str,
        "streak": question.streak + 1 if quality >= 3 else 0,
        "status": status,
        "xp_earned": question.xp_earned + xp,
    }
    updates["next_revision_date"] = calculate_next_date(replace(question, **updates), settings, today)
    updated = store.update_question(question_id, updates)

    store.log_daily_activity(today_str, "revised")
    store.add_daily_xp(today_str, xp)
    store.add_activity(
        "revision",
        f'Revised "{question.name}" (Cycle {new_cycle}/{total_cycles}, Quality: {quality}/5)',
    )

    def _count(stats):
        stats.total_revisions += 1

    store.modify_user_stats(_count)

    return RevisionResult(
        question=updated,
        xp_earned=xp,
        new_cycle=new_cycle,
        total_cycles=total_cycles,
        mastered=status == MASTERED,
    )


def reset_revision_cycle(store, question_id: str) -> Optional[Question]:
    question = store.get_question_by_id(question_id)
    if question is None:
        return None
    updated = store.update_question(question_id, {
        "revision_cycle": 0,
        "ease_factor": 2.5,
        "streak": 0,
        "status": NEEDS_REVISION,
        "next_revision_date": store.today().isoformat(),
    })
    store.add_activity("reset", f'Reset revisions for "{question.name}"')
    return updated


# Queries

def _scheduled(questions: list) -> list:
    return [q for q in questions if not q.is_mastered and q.next_revision_date]


def get_due_today(questions: list, today: date) -> list:
    """Everything due on or before today, overdue included."""
    today_str = today.isoformat()
    return [q for q in _scheduled(questions) if q.next_revision_date <= today_str]


def get_overdue(questions: list, today: date) -> list:
    today_str = today.isoformat()
    return [q for q in _scheduled(questions) if q.next_revision_date < today_str]


def get_due_exactly_today(questions: list, today: date) -> list:
    today_str = today.isoformat()
    return [q for q in _scheduled(questions) if q.next_revision_date == today_str]


def get_upcoming(questions: list, today: date, days: int = 7) -> list:
    start = today.isoformat()
    end = (today + timedelta(days=days)).isoformat()
    upcoming = [q for q in _scheduled(questions) if start < q.next_revision_date <= end]
    return sorted(upcoming, key=lambda q: q.next_revision_date)


def get_completed_today(questions: list, today: date) -> list:
    today_str = today.isoformat()
    return [q for q in questions if q.last_revision_date == today_str]


def get_priority_score(question: Question, today: date) -> int:
    """Urgency score; higher means revise sooner."""
    score = 0.0
    days_overdue = (today - date.fromisoformat(question.next_revision_date)).days
    if days_overdue > 0:
        score += days_overdue * 10
    # Low ease means a harder question
    score += (3.0 - (question.ease_factor or 2.5)) * 20
    score += max(0, 5 - (question.streak or 0)) * 3
    score += DIFFICULTY_WEIGHT.get(question.difficulty, 1) * 2
    return round(score)


def get_priority_revisions(questions: list, today: date, limit: int = 10) -> list[tuple]:
    """Due questions paired with their priority score, most urgent first."""
    scored = [(q, get_priority_score(q, today)) for q in get_due_today(questions, today)]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:limit]
