import json
import logging
import os

from dsa_tracker.config import Config, load_config
from dsa_tracker.db import DEFAULT_DB_PATH
from dsa_tracker.logging_config import JSONFormatter, init_logging


def test_defaults(monkeypatch):
    for name in ("DB_PATH", "REMOTE_URL", "REMOTE_PREFIX", "SYNC_QUEUE_SIZE", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(f"DSA_TRACKER_{name}", raising=False)
    assert load_config(dotenv=False) == Config(db_path=DEFAULT_DB_PATH)


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DSA_TRACKER_DB_PATH", str(tmp_path / "t.db"))
    monkeypatch.setenv("DSA_TRACKER_REMOTE_URL", " redis://localhost:6379/0 ")
    monkeypatch.setenv("DSA_TRACKER_SYNC_QUEUE_SIZE", "32")
    monkeypatch.setenv("DSA_TRACKER_LOG_LEVEL", "debug")
    monkeypatch.setenv("DSA_TRACKER_LOG_FORMAT", "JSON")
    config = load_config(dotenv=False)
    assert config.db_path == str(tmp_path / "t.db")
    assert config.remote_url == "redis://localhost:6379/0"
    assert config.sync_queue_size == 32
    assert config.log_level == "DEBUG"
    assert config.log_format == "json"


def test_bad_values_fall_back(monkeypatch):
    monkeypatch.setenv("DSA_TRACKER_SYNC_QUEUE_SIZE", "lots")
    monkeypatch.setenv("DSA_TRACKER_LOG_FORMAT", "xml")
    config = load_config(dotenv=False)
    assert config.sync_queue_size == 256
    assert config.log_format == "rich"


def test_dotenv_file_is_loaded(monkeypatch, tmp_path):
    monkeypatch.delenv("DSA_TRACKER_REMOTE_PREFIX", raising=False)
    (tmp_path / ".env").write_text("DSA_TRACKER_REMOTE_PREFIX=from_dotenv\n")
    monkeypatch.chdir(tmp_path)
    try:
        assert load_config().remote_prefix == "from_dotenv"
    finally:
        os.environ.pop("DSA_TRACKER_REMOTE_PREFIX", None)


def test_json_formatter():
    record = logging.LogRecord("dsa_tracker.sync", logging.WARNING, __file__, 1, "queue full: %d", (3,), None)
    entry = json.loads(JSONFormatter().format(record))
    assert entry["level"] == "WARNING"
    assert entry["logger"] == "dsa_tracker.sync"
    assert entry["message"] == "queue full: 3"


def test_init_logging_formats():
    root = logging.getLogger()
    saved = (root.level, list(root.handlers))
    try:
        handler = init_logging("info", "json")
        assert isinstance(handler.formatter, JSONFormatter)
        assert root.level == logging.INFO
        assert root.handlers == [handler]

        handler = init_logging("WARNING", "rich")
        assert type(handler).__name__ == "RichHandler"
    finally:
        root.setLevel(saved[0])
        root.handlers[:] = saved[1]
