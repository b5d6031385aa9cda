"""
Unit tests for fsbridge.logger module.

Tests cover:
- FileHandler creation, parent directories, append mode, UTF-8
- StreamHandler on stderr when console=True
- Log level parsing
- Log format (timestamp, level, thread name, logger name)
- paramiko kept at WARNING unless debugging
- Repeated setup does not duplicate handlers
"""

import logging
import sys
from pathlib import Path

import pytest

from fsbridge.config import LogConfig
from fsbridge.logger import LOG_FORMAT, NOISY_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Leave the root logger without handlers after each test."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()


def _stream_handlers():
    return [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


def _file_handlers():
    return [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]


def _flush():
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestFileHandler:
    """Tests for file handler creation."""

    def test_created_when_file_specified(self, tmp_path: Path):
        log_file = tmp_path / "fsbridge.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        handlers = _file_handlers()
        assert len(handlers) == 1
        assert Path(handlers[0].baseFilename) == log_file
        assert handlers[0].mode == "a"
        assert handlers[0].encoding == "utf-8"

    def test_not_created_without_file(self):
        setup_logging(LogConfig(level="INFO", file=None, console=True))
        assert _file_handlers() == []

    def test_creates_parent_directories(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "nested" / "fsbridge.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))
        assert log_file.parent.is_dir()

    def test_appends_to_existing_file(self, tmp_path: Path):
        log_file = tmp_path / "existing.log"
        log_file.write_text("earlier run\n", encoding="utf-8")

        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))
        logging.getLogger("fsbridge.test").info("later run")
        _flush()

        content = log_file.read_text(encoding="utf-8")
        assert "earlier run" in content
        assert "later run" in content


class TestConsoleHandler:
    """Tests for console handler creation."""

    def test_console_writes_to_stderr(self):
        setup_logging(LogConfig(level="INFO", console=True))
        handlers = _stream_handlers()
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr

    def test_no_console(self, tmp_path: Path):
        setup_logging(LogConfig(level="INFO", file=str(tmp_path / "x.log"), console=False))
        assert _stream_handlers() == []

    def test_repeated_setup_does_not_duplicate(self, tmp_path: Path):
        config = LogConfig(level="INFO", file=str(tmp_path / "x.log"), console=True)
        setup_logging(config)
        setup_logging(config)
        assert len(_file_handlers()) == 1
        assert len(_stream_handlers()) == 1


class TestLevel:
    """Tests for log level setting."""

    @pytest.mark.parametrize(
        "level_str,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("info", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("NOT_A_LEVEL", logging.INFO),
        ],
    )
    def test_level_parsed(self, level_str: str, expected_level: int):
        setup_logging(LogConfig(level=level_str, console=True))
        assert logging.getLogger().level == expected_level
        for handler in logging.getLogger().handlers:
            assert handler.level == expected_level

    def test_paramiko_quiet_by_default(self):
        setup_logging(LogConfig(level="INFO", console=True))
        assert "paramiko" in NOISY_LOGGERS
        assert logging.getLogger("paramiko").level == logging.WARNING

    def test_paramiko_verbose_when_debugging(self):
        setup_logging(LogConfig(level="DEBUG", console=True))
        assert logging.getLogger("paramiko").level == logging.DEBUG

    def test_messages_below_level_filtered(self, tmp_path: Path):
        log_file = tmp_path / "filtered.log"
        setup_logging(LogConfig(level="WARNING", file=str(log_file), console=False))

        log = logging.getLogger("fsbridge.filesystem")
        log.info("cache hit for a.txt")
        log.warning("adapter slow")
        _flush()

        content = log_file.read_text(encoding="utf-8")
        assert "cache hit" not in content
        assert "adapter slow" in content


class TestFormat:
    """Tests for log format."""

    def test_format_placeholders(self):
        for placeholder in ("%(asctime)s", "%(levelname)s", "%(threadName)s", "%(name)s", "%(message)s"):
            assert placeholder in LOG_FORMAT

    def test_record_fields_written(self, tmp_path: Path):
        log_file = tmp_path / "format.log"
        setup_logging(LogConfig(level="INFO", file=str(log_file), console=False))

        logging.getLogger("fsbridge.cache").info("unique message 12345")
        _flush()

        line = log_file.read_text(encoding="utf-8").strip()
        assert " - INFO - MainThread - fsbridge.cache - unique message 12345" in line
