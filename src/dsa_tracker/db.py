"""Local key-value persistence backed by SQLite.

Each entity family is stored as one JSON document under a fixed key. Reads
never raise: a missing key, a corrupt document or an unavailable database all
degrade to the caller's default.
"""
import copy
import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = str(Path.home() / ".dsa_tracker" / "tracker.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating the store table if it doesn't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def _fallback(default):
    if callable(default):
        return default()
    return copy.deepcopy(default)


def load(db_path: str, key: str, default=None):
    """Load the JSON document stored under ``key``.

    Args:
        db_path: Path to the SQLite database.
        key: Store key.
        default: Value returned when the key is missing or unreadable. A
            callable is invoked to build a fresh value.

    Returns:
        The decoded document, or the default.
    """
    try:
        conn = get_connection(db_path)
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("Store: error loading %s: %s", key, e)
        return _fallback(default)

    if row is None:
        return _fallback(default)
    try:
        return json.loads(row["value"])
    except (json.JSONDecodeError, TypeError) as e:
        logger.error("Store: corrupt entry for %s, using default: %s", key, e)
        return _fallback(default)


def save(db_path: str, key: str, value) -> bool:
    """Serialize ``value`` and upsert it under ``key``. Returns False on failure."""
    try:
        raw = json.dumps(value)
    except (TypeError, ValueError) as e:
        logger.error("Store: error encoding %s: %s", key, e)
        return False
    try:
        conn = get_connection(db_path)
        try:
            conn.execute(
                "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                (key, raw, datetime.now().isoformat()),
            )
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("Store: error saving %s: %s", key, e)
        return False
    return True


def save_many(db_path: str, values: dict) -> bool:
    """Upsert several keys in one transaction: either all are written or none."""
    try:
        rows = [(key, json.dumps(value), datetime.now().isoformat()) for key, value in values.items()]
    except (TypeError, ValueError) as e:
        logger.error("Store: error encoding batch: %s", e)
        return False
    try:
        conn = get_connection(db_path)
        try:
            with conn:
                conn.executemany(
                    "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                    rows,
                )
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("Store: batch save failed, nothing written: %s", e)
        return False
    return True


def delete_keys(db_path: str, keys) -> None:
    keys = list(keys)
    if not keys:
        return
    placeholders = ",".join("?" * len(keys))
    try:
        conn = get_connection(db_path)
        try:
            conn.execute(f"DELETE FROM kv_store WHERE key IN ({placeholders})", keys)
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.error("Store: error deleting %s: %s", ", ".join(keys), e)
