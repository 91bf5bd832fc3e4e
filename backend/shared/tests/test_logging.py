import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import _redact_tokens, _serialize_enums, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


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

    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "bomb"
        setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename).parent == log_dir

    def test_log_file_has_datetime_in_name(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "bomb")

        assert log_path is not None
        assert log_path.name == "2025-03-15_10-30-45.log"

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_writes_to_file(self, tmp_path):
        log_path = setup_logging(log_dir=tmp_path / "bomb")

        structlog.get_logger("test.writes_to_file").info("hello from test")

        assert log_path is not None
        assert "hello from test" in log_path.read_text()

    def test_creates_log_directory(self, tmp_path):
        log_dir = tmp_path / "nested" / "dir"
        setup_logging(log_dir=log_dir)

        assert log_dir.exists()

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_custom_log_level(self):
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        setup_logging()

        assert logging.getLogger().level == logging.DEBUG

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_quiets_chatty_libraries(self):
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger("redis").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_json_mode_produces_valid_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "bomb")

        structlog.contextvars.bind_contextvars(game_id="test-game")
        structlog.get_logger("test.json").info("json test event", extra_field="value")
        structlog.contextvars.clear_contextvars()

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "json test event"
        assert parsed["game_id"] == "test-game"
        assert parsed["extra_field"] == "value"

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "invalid_value")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()


class TestSerializeEnums:
    class _Status(Enum):
        ACTIVE = "active"

    def test_replaces_enum_with_value(self):
        event_dict = {"status": self._Status.ACTIVE, "msg": "hello"}
        result = _serialize_enums(None, "", event_dict)
        assert result == {"status": "active", "msg": "hello"}

    def test_leaves_non_enum_values_unchanged(self):
        event_dict = {"count": 42, "name": "test"}
        assert _serialize_enums(None, "", event_dict) == {"count": 42, "name": "test"}


class TestRedactTokens:
    def test_cuts_token_to_prefix(self):
        event_dict = {"event": "resume", "token": "eyJnYW1lX2lkIjogImcxIn0.c2lnbmF0dXJl"}
        assert _redact_tokens(None, "", event_dict) == {"event": "resume", "token": "eyJnYW1l..."}

    def test_seat_token_key_redacted(self):
        event_dict = {"seat_token": "abcdefghijklmnop"}
        assert _redact_tokens(None, "", event_dict) == {"seat_token": "abcdefgh..."}

    def test_missing_or_empty_token_untouched(self):
        assert _redact_tokens(None, "", {"token": "", "game_id": "g1"}) == {"token": "", "game_id": "g1"}

    def test_token_never_reaches_log_file(self, tmp_path):
        log_path = setup_logging(log_dir=tmp_path / "bomb")

        structlog.get_logger("test.redact").info("token presented", token="secret-token-value")

        assert log_path is not None
        text = log_path.read_text()
        assert "secret-t..." in text
        assert "secret-token-value" not in text
