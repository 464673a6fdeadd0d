"""
Unit tests for logging config.
"""

import json
import logging

import pytest

from evidence_integrity.utils import structured_log
from evidence_integrity.utils.logging_config import (
    ROOT_LOGGER_NAME,
    ColoredFormatter,
    LogLevel,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(level)


class TestLogLevel:
    """Test LogLevel enum."""

    def test_log_level_values(self):
        """Test LogLevel enum values."""
        assert LogLevel.MINIMAL == "minimal"
        assert LogLevel.NORMAL == "normal"
        assert LogLevel.DETAILED == "detailed"
        assert LogLevel.FULL == "full"


class TestSetupLogging:
    """Test setup_logging function."""

    def test_setup_logging_normal(self):
        logger = setup_logging(level=LogLevel.NORMAL)

        assert logger.name == ROOT_LOGGER_NAME
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1

    def test_setup_logging_minimal(self):
        assert setup_logging(level="minimal").level == logging.WARNING

    def test_setup_logging_debug(self):
        logger = setup_logging(level=LogLevel.MINIMAL, debug=True)

        assert logger.level == logging.DEBUG

    def test_setup_logging_verbose(self):
        assert setup_logging(verbose=True).level == logging.DEBUG

    def test_setup_logging_detailed(self):
        assert setup_logging(level=LogLevel.DETAILED).level == logging.DEBUG

    def test_console_writes_to_stderr(self, capsys):
        logger = setup_logging(level=LogLevel.NORMAL)
        logger.warning("crossref search failed")

        captured = capsys.readouterr()
        assert "crossref search failed" in captured.err
        assert captured.out == ""

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1

    def test_setup_logging_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"

        logger = setup_logging(log_to_file=True, log_file=str(log_file))
        logger.info("file logging works")
        for handler in logger.handlers:
            handler.flush()

        assert log_file.exists()
        assert "file logging works" in log_file.read_text()


class TestGetLogger:
    def test_module_names_are_kept(self):
        assert get_logger("evidence_integrity.citation.store").name == "evidence_integrity.citation.store"

    def test_other_names_are_nested(self):
        assert get_logger("scripts.backfill").name == "evidence_integrity.scripts.backfill"


def test_colored_formatter_leaves_record_untouched():
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", None, None)

    formatted = ColoredFormatter("%(levelname)s %(message)s").format(record)

    assert "WARNING" in formatted
    assert "careful" in formatted
    assert record.levelname == "WARNING"


def test_load_events_from_jsonl(tmp_path):
    path = tmp_path / "app.jsonl"
    path.write_text(
        json.dumps({"event": "verification", "status": "verified"}) + "\n\nnot json\n[1, 2]\n",
        encoding="utf-8",
    )

    events = structured_log.load_events_from_jsonl(str(path))

    assert events == [{"event": "verification", "status": "verified"}]
    assert structured_log.load_events_from_jsonl(str(tmp_path / "missing.jsonl")) == []
