# tests/test_review.py
from dsa_tracker.models import Question, RevisionEvent
from dsa_tracker.review import get_weak_subjects


def _q(subject, qualities=(), **kwargs):
    history = [RevisionEvent(date="2024-03-01", quality=q) for q in qualities]
    return Question(name="q", subject=subject, revision_history=history, **kwargs)


def test_get_weak_subjects_empty():
    assert get_weak_subjects([]) == []


def test_unrevised_subject_is_neutral():
    [row] = get_weak_subjects([_q("Arrays")])
    assert row["strength_score"] == 50
    assert row["avg_quality"] == 3.0
    assert row["avg_ease"] == 2.5


def test_weakest_subject_first():
    questions = [
        _q("Graphs", [2, 1]),
        _q("Arrays", [5, 5], status="Mastered"),
        _q("Arrays", [4]),
    ]
    weak = get_weak_subjects(questions)
    assert [r["name"] for r in weak] == ["Graphs", "Arrays"]
    assert weak[0]["strength_score"] == 30
    arrays = weak[1]
    assert arrays["total"] == 2
    assert arrays["mastery_percent"] == 50
    assert arrays["strength_score"] == 93
