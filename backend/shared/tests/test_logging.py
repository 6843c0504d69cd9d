import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import _serialize_values, setup_logging
from tilepool.logic.enums import MeldKind
from tilepool.logic.hand import make_meld
from tilepool.logic.tiles import Tile


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
    def test_configures_stderr_handler(self):
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1

        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "sessions"
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
            log_path = setup_logging(log_dir=tmp_path / "sessions")

        assert log_path is not None
        assert log_path.name == "2025-03-15_10-30-45.log"

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_skips_file_under_pytest(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            result = setup_logging(log_dir=tmp_path / "sessions")

        assert result is None
        assert not (tmp_path / "sessions").exists()

    def test_writes_to_file(self, tmp_path):
        log_path = setup_logging(log_dir=tmp_path / "sessions")

        structlog.get_logger("test.writes_to_file").info("hello from test")

        assert log_path is not None
        assert "hello from test" in log_path.read_text()

    def test_creates_log_directory(self, tmp_path):
        log_dir = tmp_path / "nested" / "dir"
        log_path = setup_logging(log_dir=log_dir)

        structlog.get_logger("test.creates_log_dir").info("nested log")

        assert log_dir.exists()
        assert log_path is not None
        assert "nested log" in log_path.read_text()

    def test_accepts_string_path(self, tmp_path):
        setup_logging(log_dir=str(tmp_path / "string_dir"))

        assert isinstance(logging.getLogger().handlers[1], logging.FileHandler)

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

    def test_json_mode_produces_valid_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "sessions")

        structlog.contextvars.bind_contextvars(player_count=4)
        structlog.get_logger("test.json").info("operation applied", operation="+5z", tile=Tile(suit="z", rank=5))
        structlog.contextvars.clear_contextvars()

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "operation applied"
        assert parsed["player_count"] == 4
        assert parsed["operation"] == "+5z"
        assert parsed["tile"] == "5z"

    def test_json_mode_argument_overrides_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "console")
        log_path = setup_logging(log_dir=tmp_path / "sessions", json_mode=True)

        structlog.get_logger("test.json_override").info("override event", tile=Tile(suit="m", rank=1))

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "override event"
        assert parsed["tile"] == "1m"

    def test_console_mode_produces_readable_output(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "console")
        log_path = setup_logging(log_dir=tmp_path / "sessions")

        structlog.get_logger("test.console").info("console test event")

        assert log_path is not None
        assert "console test event" in log_path.read_text()

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "invalid_value")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()


class TestSerializeValues:
    class _Color(Enum):
        RED = "red"
        BLUE = "blue"

    def test_replaces_enum_with_value(self):
        result = _serialize_values(None, "", {"action": self._Color.RED, "msg": "hello"})
        assert result == {"action": "red", "msg": "hello"}

    def test_replaces_enum_inside_dict_value(self):
        result = _serialize_values(None, "", {"data": {"color": self._Color.BLUE, "count": 3}})
        assert result["data"] == {"color": "blue", "count": 3}

    def test_renders_tiles_and_melds_as_notation(self):
        tile = Tile(suit="z", rank=5)
        meld = make_meld(MeldKind.PON, (tile, tile, tile), tile)
        result = _serialize_values(None, "", {"tile": tile, "meld": meld, "kind": MeldKind.PON})
        assert result == {"tile": "5z", "meld": "[555z]", "kind": "pon"}

    def test_renders_tiles_inside_sequences(self):
        tiles = (Tile(suit="m", rank=1), Tile(suit="p", rank=9))
        result = _serialize_values(None, "", {"tiles": tiles})
        assert result["tiles"] == ["1m", "9p"]

    def test_leaves_plain_values_unchanged(self):
        result = _serialize_values(None, "", {"count": 42, "name": "test"})
        assert result == {"count": 42, "name": "test"}
