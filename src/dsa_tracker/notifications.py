"""Presentation callbacks and the reminder logic that drives them."""
from datetime import date
from typing import Protocol

from dsa_tracker.revision import get_due_exactly_today, get_due_today, get_overdue


class PresentationHooks(Protocol):
    def on_toast(self, message: str, severity: str = "info") -> None: ...
    def on_confetti(self) -> None: ...
    def on_notification_dot_update(self, has_pending: bool) -> None: ...


class NullHooks:
    """Default hooks: every callback is a no-op."""

    def on_toast(self, message: str, severity: str = "info") -> None:
        pass

    def on_confetti(self) -> None:
        pass

    def on_notification_dot_update(self, has_pending: bool) -> None:
        pass


def has_pending_revisions(questions: list, today: date) -> bool:
    return bool(get_overdue(questions, today) or get_due_exactly_today(questions, today))


def update_notification_dot(store, hooks: PresentationHooks, today: date | None = None) -> bool:
    today = today or store.today()
    pending = has_pending_revisions(store.get_questions(), today)
    hooks.on_notification_dot_update(pending)
    return pending


def login_reminder(store, hooks: PresentationHooks, today: date | None = None) -> list[str]:
    """Toast overdue warnings and streak encouragement; returns the messages sent."""
    today = today or store.today()
    settings = store.get_settings()
    stats = store.get_user_stats()
    questions = store.get_questions()
    sent = []

    overdue = get_overdue(questions, today)
    if settings.overdue_alerts and overdue:
        plural = "s" if len(overdue) > 1 else ""
        message = f"You have {len(overdue)} overdue revision{plural}! Time to catch up."
        hooks.on_toast(message, "warning")
        sent.append(message)

    if stats.current_streak > 0:
        due = get_due_today(questions, today)
        message = f"{stats.current_streak}-day streak! Keep it going with {len(due)} revisions today."
        hooks.on_toast(message, "info")
        sent.append(message)
    return sent
