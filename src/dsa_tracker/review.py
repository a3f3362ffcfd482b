"""Weak subject identification."""
from dsa_tracker.models import MASTERED


def get_weak_subjects(questions: list) -> list[dict]:
    """Per-subject strength from revision quality (sorted weakest first).

    Subjects with no revisions yet get a neutral strength of 50.
    """
    subjects = {}
    for q in questions:
        s = subjects.setdefault(q.subject, {
            "total": 0, "ef_sum": 0.0, "quality_sum": 0, "quality_count": 0, "mastered": 0,
        })
        s["total"] += 1
        s["ef_sum"] += q.ease_factor or 2.5
        if q.status == MASTERED:
            s["mastered"] += 1
        for event in q.revision_history:
            s["quality_sum"] += event.quality
            s["quality_count"] += 1

    results = []
    for name, s in subjects.items():
        avg_quality = s["quality_sum"] / s["quality_count"] if s["quality_count"] else 3.0
        results.append({
            "name": name,
            "total": s["total"],
            "avg_ease": round(s["ef_sum"] / s["total"], 2),
            "avg_quality": round(avg_quality, 2),
            "mastery_percent": round(s["mastered"] / s["total"] * 100),
            "strength_score": round(avg_quality / 5 * 100) if s["quality_count"] else 50,
        })
    return sorted(results, key=lambda r: r["strength_score"])
