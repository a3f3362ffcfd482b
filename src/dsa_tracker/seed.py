"""Seed the store with the default exam syllabi."""
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "content"


def load_default_syllabi() -> list[dict]:
    """Read the bundled syllabus definitions from syllabi.json."""
    data = json.loads((CONTENT_DIR / "syllabi.json").read_text(encoding="utf-8"))
    return data["syllabi"]


def is_seeded(store) -> bool:
    """Check whether the store already holds any syllabus."""
    return len(store.get_syllabi()) > 0


def seed_default_syllabi(store) -> int:
    """Add every default syllabus if none exist yet. Returns how many were added."""
    if is_seeded(store):
        return 0
    added = 0
    for syllabus in load_default_syllabi():
        store.add_syllabus(syllabus["name"], stream=syllabus["stream"], topics=syllabus["topics"])
        added += 1
    logger.info("Seeded %d default syllabi", added)
    return added
