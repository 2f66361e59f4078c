import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import _serialize_values, bind_session_context, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture
def _allow_file_logging():
    with patch("shared.logging._is_test", return_value=False):
        yield


def _flush_handlers() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestSetupLogging:
    def test_configures_stdout_handler(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_no_file_under_pytest(self, tmp_path):
        assert setup_logging(log_dir=tmp_path / "arcade") is None
        assert not (tmp_path / "arcade").exists()

    @pytest.mark.usefixtures("_allow_file_logging")
    def test_file_named_after_start_time(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=str(tmp_path / "nested" / "arcade"))

        assert log_path == tmp_path / "nested" / "arcade" / "2025-03-15_10-30-45.log"
        assert len(logging.getLogger().handlers) == 2

    def test_repeated_calls_replace_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    @pytest.mark.parametrize(("name", "value"), [("LOG_LEVEL", "LOUD"), ("LOG_FORMAT", "xml")])
    def test_invalid_env_raises(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValueError, match=f"Invalid {name}"):
            setup_logging()

    @pytest.mark.usefixtures("_allow_file_logging")
    def test_json_output_carries_session_context(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        log_path = setup_logging(log_dir=tmp_path)

        with bind_session_context("s1", "wordfall", "u1"):
            structlog.get_logger().info("word completed", bucket="easy")
        _flush_handlers()

        line = Path(log_path).read_text().strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "word completed"
        assert record["session_id"] == "s1"
        assert record["game"] == "wordfall"
        assert record["user_id"] == "u1"
        assert record["level"] == "info"


class _Color(Enum):
    RED = "red"


class TestSerializeValues:
    def test_enum_rendered_by_value(self):
        event = _serialize_values(None, "info", {"color": _Color.RED})
        assert event["color"] == "red"

    def test_sets_become_sorted_lists(self):
        event = _serialize_values(None, "info", {"letters": {"C", "A", "B"}})
        assert event["letters"] == ["A", "B", "C"]

    def test_one_dict_level_deep(self):
        event = _serialize_values(None, "info", {"ctx": {"color": _Color.RED, "n": 1}})
        assert event["ctx"] == {"color": "red", "n": 1}

    def test_other_values_unchanged(self):
        event = _serialize_values(None, "info", {"score": 42, "event": "done"})
        assert event == {"score": 42, "event": "done"}


class TestBindSessionContext:
    def test_binds_and_unbinds(self):
        with bind_session_context("s1", _Color.RED):
            assert structlog.contextvars.get_contextvars() == {"session_id": "s1", "game": "red"}
        assert "session_id" not in structlog.contextvars.get_contextvars()

    def test_user_id_optional(self):
        with bind_session_context("s1", "verb_challenge", user_id="u9"):
            assert structlog.contextvars.get_contextvars()["user_id"] == "u9"
