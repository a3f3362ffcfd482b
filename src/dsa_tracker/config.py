"""Runtime configuration read from the environment.

Variables (a ``.env`` file in the working directory is loaded first):

    DSA_TRACKER_DB_PATH          local SQLite file
    DSA_TRACKER_REMOTE_URL       "" (local only), "memory://" or "redis://host:port/db"
    DSA_TRACKER_REMOTE_PREFIX    key prefix for remote collections
    DSA_TRACKER_SYNC_QUEUE_SIZE  max pending remote writes before new ones are dropped
    DSA_TRACKER_LOG_LEVEL        DEBUG, INFO, WARNING, ...
    DSA_TRACKER_LOG_FORMAT       "rich", "text" or "json"
"""
import logging
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from dsa_tracker.db import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

LOG_FORMATS = ("rich", "text", "json")


@dataclass
class Config:
    db_path: str = DEFAULT_DB_PATH
    remote_url: str = ""
    remote_prefix: str = "dsa_tracker"
    sync_queue_size: int = 256
    log_level: str = "WARNING"
    log_format: str = "rich"


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer, using %d", name, raw, default)
        return default
    return value if value > 0 else default


def load_config(dotenv: bool = True) -> Config:
    """Build a Config from environment variables."""
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))
    log_format = os.environ.get("DSA_TRACKER_LOG_FORMAT", "rich").lower()
    if log_format not in LOG_FORMATS:
        logger.warning("Unknown log format %r, using rich", log_format)
        log_format = "rich"
    return Config(
        db_path=os.path.expanduser(os.environ.get("DSA_TRACKER_DB_PATH", "") or DEFAULT_DB_PATH),
        remote_url=os.environ.get("DSA_TRACKER_REMOTE_URL", "").strip(),
        remote_prefix=os.environ.get("DSA_TRACKER_REMOTE_PREFIX", "") or "dsa_tracker",
        sync_queue_size=_int_env("DSA_TRACKER_SYNC_QUEUE_SIZE", 256),
        log_level=os.environ.get("DSA_TRACKER_LOG_LEVEL", "WARNING").upper(),
        log_format=log_format,
    )
