# src/forum/tests/test_logging/test_builder_setup.py
import json
import logging

import pytest

from forum.config import get_settings
from forum.core.logging.builder import make_dict_config, setup_logging


# Create a minimal Settings-like object for testing
class DummySettings:
    LOG_FORMAT = "json"
    LOG_LEVEL = "INFO"
    LOG_TO_STDOUT = False
    LOG_DIR = None  # will be set in test
    LOG_MAX_BYTES = 1000
    LOG_BACKUP_COUNT = 1
    ENV = "testing"
    ENABLE_SQL_LOGGING = False


@pytest.fixture
def restore_logging():
    yield
    # put the suite-wide configuration back
    setup_logging(get_settings())


def test_make_dict_config_contains_file_handlers(tmp_path):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path
    cfg = make_dict_config(settings)

    assert set(cfg["handlers"]) == {"console", "file", "error_file"}
    assert cfg["handlers"]["file"]["filename"] == str(tmp_path / "forum.log")
    assert cfg["handlers"]["error_file"]["level"] == "ERROR"
    assert cfg["formatters"]["json"]["env"] == "testing"
    assert cfg["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"


def test_stdout_only_uses_error_console():
    settings = DummySettings()
    settings.LOG_TO_STDOUT = True
    settings.LOG_FORMAT = "text"
    settings.ENABLE_SQL_LOGGING = True
    cfg = make_dict_config(settings)

    assert set(cfg["handlers"]) == {"console", "error_console"}
    assert cfg["handlers"]["console"]["formatter"] == "standard"
    assert cfg["handlers"]["console"]["filters"] == ["request_id", "redact"]
    assert cfg["loggers"]["sqlalchemy.engine"]["level"] == "INFO"


def test_setup_logging_creates_log_dir_and_writes_json(tmp_path, restore_logging):
    settings = DummySettings()
    settings.LOG_DIR = tmp_path / "logs"
    assert not settings.LOG_DIR.exists()

    setup_logging(settings)

    assert settings.LOG_DIR.exists()

    # Act: log through the configured handlers, including a sensitive extra
    logger = logging.getLogger("forum.tests.builder")
    logger.info("conversation.created", extra={"conversation_id": 5, "email": "a@b.c"})
    for handler in logging.getLogger().handlers:
        handler.flush()

    # Assert: one JSON line with the extra kept and the email redacted
    lines = (settings.LOG_DIR / "forum.log").read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[-1])
    assert record["message"] == "conversation.created"
    assert record["conversation_id"] == 5
    assert record["email"] == "***REDACTED***"
    assert record["request_id"] == "-"
