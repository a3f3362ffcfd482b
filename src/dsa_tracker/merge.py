"""Conflict resolution between local and remote item sets.

Whole-record last-writer-wins: when both sides hold an item with the same id,
the copy with the strictly newer ``updated_at`` replaces the other entirely.
Concurrent edits to different fields of one record are not combined.
"""
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are read as UTC."""
    if not value or not isinstance(value, str):
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Merge: unparseable timestamp %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_newer(candidate: dict, current: dict, stamp: str = "updated_at") -> bool:
    """True when both carry a timestamp and ``candidate``'s is strictly later."""
    theirs = parse_timestamp(candidate.get(stamp))
    ours = parse_timestamp(current.get(stamp))
    if theirs is None or ours is None:
        return False
    return theirs > ours


def merge_items(local: list, remote: list, key: str = "id", stamp: str = "updated_at") -> list:
    """Merge two item lists keyed by ``key``.

    Local-only items are always kept: a remote deletion never propagates
    through a merge. The result order is unspecified.
    """
    merged = {}
    for item in local:
        if item.get(key) is None:
            logger.warning("Merge: skipping local item without %s", key)
            continue
        merged[item[key]] = item
    for item in remote:
        item_id = item.get(key)
        if item_id is None:
            logger.warning("Merge: skipping remote item without %s", key)
            continue
        existing = merged.get(item_id)
        if existing is None or is_newer(item, existing, stamp):
            merged[item_id] = item
    return list(merged.values())
