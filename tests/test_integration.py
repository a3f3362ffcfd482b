# tests/test_integration.py
"""End-to-end test of the core workflow."""
from dsa_tracker.config import Config
from dsa_tracker.dashboard import get_summary
from dsa_tracker.service import TrackerService


def _service(tmp_db, hooks, clock, remote=None, **config):
    return TrackerService(Config(db_path=tmp_db, **config), hooks, remote=remote, clock=clock)


def test_full_tracking_workflow(tmp_db, hooks, clock, remote):
    """Log, revise and sync across days and verify all systems work together."""
    service = _service(tmp_db, hooks, clock, remote)
    assert service.startup() is False  # remote empty: bootstrapped, not merged
    assert len(service.store.get_syllabi()) == 7

    # Day 1: log a question
    question, xp = service.log_question({
        "name": "Two Sum", "subject": "Arrays", "difficulty": "Medium",
        "date_solved": "2024-03-10", "time_taken": 12,
    })
    assert xp == 10
    stats = service.store.get_user_stats()
    # 10 for the question + 30 for the first_question badge
    assert stats.total_xp == 40
    assert stats.current_streak == 1
    assert stats.badges == ["first_question"]
    assert service.store.get_daily_log()["2024-03-10"].solved == 1
    assert hooks.toasts[-1] == ('"Two Sum" added! +10 XP', "success")

    # Day 2: the question is due; revise it
    assert service.sync.flush(timeout=5)
    clock.advance(days=1)
    assert service.startup(remind=False) is True
    assert hooks.dots[-1] is True
    result = service.log_revision(question.id, 4, time_taken=5)
    assert result.new_cycle == 1
    stats = service.store.get_user_stats()
    assert stats.current_streak == 2
    assert stats.total_revisions == 1
    assert "first_revision" in stats.badges
    assert hooks.dots[-1] is False

    summary = get_summary(service.store)
    assert summary["total_questions"] == 1
    assert summary["completed_today"] == 1

    service.shutdown()
    assert remote.get_document("userStats", "current")["total_revisions"] == 1
    assert remote.get_document("questions", question.id)["revision_cycle"] == 1


def test_level_up_celebrates(tmp_db, hooks, clock):
    service = _service(tmp_db, hooks, clock)
    for i in range(8):
        service.log_question({"name": f"q{i}", "subject": "Graphs", "difficulty": "Hard"})
    assert service.store.get_user_stats().level >= 2
    assert hooks.confetti >= 1
    service.shutdown()


def test_log_revision_unknown_question(tmp_db, hooks, clock):
    service = _service(tmp_db, hooks, clock)
    assert service.log_revision("missing", 4) is None
    assert hooks.toasts == []


def test_startup_merges_remote_questions(tmp_db, hooks, clock, remote):
    remote.set_document("questions", "r1", {
        "id": "r1", "name": "Word Ladder", "subject": "Graphs", "updated_at": "2024-03-09T00:00:00Z",
    })
    service = _service(tmp_db, hooks, clock, remote)
    assert service.startup() is True
    assert service.store.get_question_by_id("r1").name == "Word Ladder"
    assert ("Synced with remote store!", "success") in hooks.toasts
    service.shutdown()


def test_startup_decays_stale_streak(tmp_db, hooks, clock):
    service = _service(tmp_db, hooks, clock)
    service.store.update_user_stats(current_streak=9, last_active_date="2024-03-01")
    service.startup()
    assert service.store.get_user_stats().current_streak == 0


def test_startup_login_reminder(tmp_db, hooks, clock):
    service = _service(tmp_db, hooks, clock)
    settings = service.store.get_settings()
    settings.notifications_enabled = True
    service.store.save_settings(settings)
    service.store.update_user_stats(current_streak=1, last_active_date="2024-03-10")
    service.startup()
    assert any("streak" in message for message, _ in hooks.toasts)


def test_reset_wipes_everything(tmp_db, hooks, clock, remote):
    service = _service(tmp_db, hooks, clock, remote)
    service.log_question({"name": "Two Sum", "subject": "Arrays"})
    service.reset()
    service.sync.flush(timeout=5)
    assert service.store.get_questions() == []
    assert service.store.get_user_stats().total_xp == 0
    assert remote.fetch_all("questions") == []
    service.shutdown()


def test_remote_url_builds_backend(tmp_db, hooks, clock):
    service = _service(tmp_db, hooks, clock, remote_url="memory://")
    assert service.sync.enabled
    assert not _service(tmp_db, hooks, clock).sync.enabled
