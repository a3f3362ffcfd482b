"""XP, levels, streaks and badges.

Levels are cumulative: reaching level L+1 costs ``xp_for_level(L)`` XP on top
of everything spent on earlier levels. All stats writes go through
``RecordStore.modify_user_stats`` so concurrent awards never lose XP.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from dsa_tracker.activity import streak_week
from dsa_tracker.models import MASTERED, Badge
from dsa_tracker.notifications import NullHooks, PresentationHooks

logger = logging.getLogger(__name__)

STREAK_MILESTONES = {7: 50, 14: 100, 30: 200, 60: 400, 100: 800}
BADGE_XP = 30


def _mastered(questions):
    return [q for q in questions if q.status == MASTERED]


BADGES = (
    Badge("first_question", "First Step", "🌱", "Log your first question",
          lambda s, q: len(q) >= 1),
    Badge("ten_questions", "Getting Started", "📝", "Log 10 questions",
          lambda s, q: len(q) >= 10),
    Badge("fifty_questions", "Committed", "💪", "Log 50 questions",
          lambda s, q: len(q) >= 50),
    Badge("hundred_questions", "Centurion", "🏛️", "Log 100 questions",
          lambda s, q: len(q) >= 100),
    Badge("five_hundred", "DSA Warrior", "⚔️", "Log 500 questions",
          lambda s, q: len(q) >= 500),
    Badge("first_revision", "Revisor", "🔄", "Complete first revision",
          lambda s, q: s.total_revisions >= 1),
    Badge("fifty_revisions", "Diligent", "📖", "Complete 50 revisions",
          lambda s, q: s.total_revisions >= 50),
    Badge("two_hundred_rev", "Review Master", "🎓", "Complete 200 revisions",
          lambda s, q: s.total_revisions >= 200),
    Badge("first_mastered", "First Mastery", "⭐", "Master your first question",
          lambda s, q: len(_mastered(q)) >= 1),
    Badge("ten_mastered", "Scholar", "🏅", "Master 10 questions",
          lambda s, q: len(_mastered(q)) >= 10),
    Badge("fifty_mastered", "Grandmaster", "👑", "Master 50 questions",
          lambda s, q: len(_mastered(q)) >= 50),
    Badge("streak_7", "Week Warrior", "🔥", "7-day streak",
          lambda s, q: s.longest_streak >= 7),
    Badge("streak_30", "Monthly Dedication", "🌟", "30-day streak",
          lambda s, q: s.longest_streak >= 30),
    Badge("streak_100", "Unstoppable", "💎", "100-day streak",
          lambda s, q: s.longest_streak >= 100),
    Badge("level_5", "Rising Star", "🌠", "Reach Level 5",
          lambda s, q: s.level >= 5),
    Badge("level_10", "Veteran", "🏆", "Reach Level 10",
          lambda s, q: s.level >= 10),
    Badge("level_25", "Legend", "🐉", "Reach Level 25",
          lambda s, q: s.level >= 25),
    Badge("all_subjects", "Well-Rounded", "🌐", "Solve from 5+ subjects",
          lambda s, q: len({x.subject for x in q}) >= 5),
    Badge("hard_master", "Hard Hitter", "🥊", "Master 5 Hard questions",
          lambda s, q: len([x for x in _mastered(q) if x.difficulty == "Hard"]) >= 5),
    Badge("speed_demon", "Speed Demon", "⚡", "Solve 5 questions in <15min each",
          lambda s, q: len([x for x in q if x.time_taken and x.time_taken <= 15]) >= 5),
)


@dataclass
class LevelInfo:
    level: int
    current_level_xp: int
    xp_for_next_level: int
    total_xp: int
    progress: float


@dataclass
class XPAward:
    amount: int
    reason: str
    new_total: int
    level_info: LevelInfo
    leveled_up: bool = False


def xp_for_level(level: int) -> int:
    """XP needed to clear ``level``: round(100 * level^1.5)."""
    return round(100 * level ** 1.5)


def level_from_total_xp(total_xp: int) -> LevelInfo:
    level = 1
    cumulative = 0
    while cumulative + xp_for_level(level) <= total_xp:
        cumulative += xp_for_level(level)
        level += 1
    needed = xp_for_level(level)
    return LevelInfo(
        level=level,
        current_level_xp=total_xp - cumulative,
        xp_for_next_level=needed,
        total_xp=total_xp,
        progress=(total_xp - cumulative) / needed,
    )


class GamificationEngine:
    """Derives XP, level, streak and badge state from store activity."""

    def __init__(self, store, hooks: Optional[PresentationHooks] = None):
        self.store = store
        self.hooks = hooks or NullHooks()

    # XP

    def award_xp(self, amount: int, reason: str) -> XPAward:
        """Add ``amount`` XP and recompute the level.

        Raises:
            ValueError: If ``amount`` is negative.
        """
        if amount < 0:
            raise ValueError(f"XP award must be non-negative, got {amount}")
        before = {}

        def _apply(stats):
            before["level"] = stats.level or 1
            stats.total_xp = (stats.total_xp or 0) + amount
            stats.level = level_from_total_xp(stats.total_xp).level

        stats = self.store.modify_user_stats(_apply)
        info = level_from_total_xp(stats.total_xp)
        leveled_up = info.level > before["level"]
        logger.debug("Awarded %d XP (%s), total %d", amount, reason, stats.total_xp)
        if leveled_up:
            self._on_level_up(info.level)
        return XPAward(amount, reason, stats.total_xp, info, leveled_up)

    def _on_level_up(self, level: int) -> None:
        self.store.add_activity("levelup", f"Leveled up to Level {level}! 🎉")
        self.hooks.on_confetti()
        self.hooks.on_toast(f"🎉 Level Up! You're now Level {level}!", "success")

    def get_level_info(self) -> LevelInfo:
        return level_from_total_xp(self.store.get_user_stats().total_xp)

    # Streaks

    def update_streak(self) -> int:
        """Record activity today and return the current streak."""
        today = self.store.today()
        today_str = today.isoformat()
        yesterday_str = (today - timedelta(days=1)).isoformat()
        result = {"changed": False}

        def _apply(stats):
            if stats.last_active_date == today_str:
                return False
            if stats.last_active_date == yesterday_str:
                stats.current_streak = (stats.current_streak or 0) + 1
            else:
                stats.current_streak = 1
            stats.last_active_date = today_str
            stats.longest_streak = max(stats.longest_streak or 0, stats.current_streak)
            result["changed"] = True

        stats = self.store.modify_user_stats(_apply)
        streak = stats.current_streak
        # Streak is already saved; the bonus is a separate stats write
        if result["changed"] and streak in STREAK_MILESTONES:
            self._award_streak_bonus(streak, STREAK_MILESTONES[streak])
        return streak

    def _award_streak_bonus(self, days: int, xp: int) -> None:
        self.award_xp(xp, f"{days}-day streak bonus")
        self.store.add_activity("streak", f"🔥 {days}-day streak! +{xp} XP bonus!")
        self.hooks.on_toast(f"🔥 {days}-day streak achieved! +{xp} XP!", "success")

    def check_streak(self) -> int:
        """Reset the streak to 0 if the last active day is older than yesterday."""
        today = self.store.today()
        alive = {today.isoformat(), (today - timedelta(days=1)).isoformat()}
        stats = self.store.get_user_stats()
        if not stats.last_active_date or stats.last_active_date in alive or stats.current_streak <= 0:
            return stats.current_streak or 0

        lost = {}

        def _apply(s):
            lost["days"] = s.current_streak
            s.current_streak = 0

        self.store.modify_user_stats(_apply)
        if lost["days"] > 0:
            self.store.add_activity("streak-lost", f"Streak of {lost['days']} days lost 😔")
            logger.info("Streak of %d days lost", lost["days"])
        return 0

    def get_streak_week(self) -> list[dict]:
        return streak_week(self.store.get_daily_log(), self.store.today())

    # Badges

    def check_badges(self) -> list[Badge]:
        """Unlock every badge whose condition now holds; returns only new ones."""
        questions = self.store.get_questions()
        new_badges = []

        def _apply(stats):
            unlocked = set(stats.badges)
            for badge in BADGES:
                if badge.id not in unlocked and badge.check(stats, questions):
                    stats.badges.append(badge.id)
                    unlocked.add(badge.id)
                    new_badges.append(badge)

        stats = self.store.get_user_stats()
        if not any(b.id not in stats.badges and b.check(stats, questions) for b in BADGES):
            return []
        self.store.modify_user_stats(_apply)

        for badge in new_badges:
            self.award_xp(BADGE_XP, f"Badge: {badge.name}")
            self.store.add_activity("badge", f'🏅 Earned badge: "{badge.name}"')
            self.hooks.on_toast(f"{badge.icon} Badge Unlocked: {badge.name}!", "success")
        return new_badges

    def get_all_badges(self) -> list[dict]:
        """The full catalog with an ``unlocked`` flag per badge."""
        unlocked = set(self.store.get_user_stats().badges)
        return [
            {"badge": badge, "unlocked": badge.id in unlocked}
            for badge in BADGES
        ]
