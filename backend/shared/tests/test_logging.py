import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.dal.models import GamePhase
from shared.logging import _serialize_enums, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture(autouse=True)
def _default_env(monkeypatch):
    """Start every test from the production defaults rather than .env.tests."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_FORMAT", raising=False)


@pytest.fixture(autouse=True)
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self):
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_adds_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "game"
        log_path = setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename) == log_path
        assert log_path.parent == log_dir
        assert log_path.suffix == ".log"

    def test_log_file_has_datetime_in_name(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "game")

        assert log_path is not None
        assert log_path.name == "2025-03-15_10-30-45.log"

    def test_no_file_under_pytest_guard(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            assert setup_logging(log_dir=tmp_path / "game") is None
        assert not (tmp_path / "game").exists()

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_writes_structlog_and_stdlib_records(self, tmp_path):
        log_path = setup_logging(log_dir=tmp_path / "nested" / "dir")

        structlog.get_logger("test.structlog").info("placement resolved", is_valid=True)
        logging.getLogger("test.stdlib").info("reaper removed %d inactive games", 3)

        content = log_path.read_text()
        assert "placement resolved" in content
        assert "reaper removed 3 inactive games" in content

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_custom_log_level(self):
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()

        assert logging.getLogger().level == logging.WARNING

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_quiets_chatty_loggers(self):
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_json_mode_produces_valid_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "game")

        structlog.contextvars.bind_contextvars(game_id="g1")
        structlog.get_logger("test.json").info("game started", phase=GamePhase.PLAYING)
        structlog.contextvars.clear_contextvars()

        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "game started"
        assert parsed["game_id"] == "g1"
        assert parsed["phase"] == "PLAYING"
        assert parsed["level"] == "info"

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()


class TestSerializeEnums:
    class _Color(Enum):
        RED = "red"

    def test_replaces_enum_with_value(self):
        event_dict = {"color": self._Color.RED, "msg": "hello"}
        result = _serialize_enums(None, "", event_dict)
        assert result == {"color": "red", "msg": "hello"}

    def test_leaves_non_enum_values_unchanged(self):
        event_dict = {"count": 42, "name": "test"}
        assert _serialize_enums(None, "", event_dict) == {"count": 42, "name": "test"}
