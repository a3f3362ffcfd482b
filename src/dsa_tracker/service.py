"""Process-wide service wiring the store, sync worker and gamification engine."""
import logging
from typing import Optional

from dsa_tracker.config import Config
from dsa_tracker.gamification import GamificationEngine
from dsa_tracker.notifications import NullHooks, PresentationHooks, login_reminder, update_notification_dot
from dsa_tracker.remote import RemoteStore, create_remote_store
from dsa_tracker.revision import NEW_QUESTION_XP, RevisionResult, complete_revision
from dsa_tracker.seed import seed_default_syllabi
from dsa_tracker.store import RecordStore
from dsa_tracker.sync import SyncAdapter

logger = logging.getLogger(__name__)


class TrackerService:
    """Owns one RecordStore, SyncAdapter and GamificationEngine.

    Args:
        config: Runtime configuration.
        hooks: Presentation callbacks; no-ops by default.
        remote: Remote backend. Built from ``config.remote_url`` when omitted.
        clock: Optional clock passed through to the store.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        hooks: Optional[PresentationHooks] = None,
        remote: Optional[RemoteStore] = None,
        clock=None,
    ):
        self.config = config or Config()
        self.hooks = hooks or NullHooks()
        if remote is None and self.config.remote_url:
            remote = create_remote_store(self.config.remote_url, self.config.remote_prefix)
        self.sync = SyncAdapter(remote, max_pending=self.config.sync_queue_size)
        self.store = RecordStore(self.config.db_path, sync=self.sync, clock=clock)
        self.engine = GamificationEngine(self.store, self.hooks)

    def startup(self, remind: bool = True) -> bool:
        """Seed, decay the streak, pull remote questions and refresh the dot.

        Returns True when remote data was merged into the local store.
        """
        seed_default_syllabi(self.store)
        self.engine.check_streak()
        synced = self.store.sync_from_remote()
        if synced:
            self.hooks.on_toast("Synced with remote store!", "success")
        update_notification_dot(self.store, self.hooks)
        if remind and self.store.get_settings().notifications_enabled:
            login_reminder(self.store, self.hooks)
        return synced

    def log_question(self, data) -> tuple:
        """Add a solved question and apply its XP, streak and badge effects.

        Returns:
            (question, xp awarded for the question)
        """
        question = self.store.add_question(data)
        xp = NEW_QUESTION_XP.get(question.difficulty, 5)
        self.engine.award_xp(xp, "New question added")
        today = self.store.today()
        self.store.log_daily_activity(today, "solved")
        self.store.add_daily_xp(today, xp)
        self.engine.update_streak()
        self.engine.check_badges()
        update_notification_dot(self.store, self.hooks)
        self.hooks.on_toast(f'"{question.name}" added! +{xp} XP', "success")
        return question, xp

    def log_revision(self, question_id: str, quality: int, time_taken: int = 0, notes: str = "") -> Optional[RevisionResult]:
        """Complete a revision; returns None when the question does not exist."""
        result = complete_revision(self.store, question_id, quality, time_taken, notes)
        if result is None:
            return None
        self.engine.award_xp(result.xp_earned, "Revision completed")
        self.engine.update_streak()
        self.engine.check_badges()
        update_notification_dot(self.store, self.hooks)
        if result.mastered:
            self.hooks.on_toast(f'🌟 "{result.question.name}" MASTERED! +{result.xp_earned} XP', "success")
            self.hooks.on_confetti()
        else:
            self.hooks.on_toast(
                f"✅ Revision done! Cycle {result.new_cycle}/{result.total_cycles}. +{result.xp_earned} XP",
                "success",
            )
        return result

    def reset(self) -> None:
        """Wipe all local data and schedule a remote wipe."""
        self.store.reset_all()
        update_notification_dot(self.store, self.hooks)
        logger.info("All tracker data reset")

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        if self.sync.pending:
            logger.info("Flushing %d pending remote writes", self.sync.pending)
        self.sync.close(timeout)
