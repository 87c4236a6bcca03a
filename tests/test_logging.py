"""Tests for structured logging functionality."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys

import pytest

from ascend.config import BaseConfig
from ascend.logging_config import JSONFormatter, get_logger, setup_logging


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.setenv("ASCEND_DATA_DIR", str(tmp_path))
    return BaseConfig()


def _record(**overrides) -> logging.LogRecord:
    values = dict(
        name="ascend.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=42,
        msg="Rollup finished",
        args=(),
        exc_info=None,
    )
    values.update(overrides)
    record = logging.LogRecord(**values)
    record.module = "test_module"
    record.funcName = "test_function"
    return record


def test_json_formatter():
    """JSONFormatter renders the standard fields."""
    log_data = json.loads(JSONFormatter().format(_record()))

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "ascend.test"
    assert log_data["message"] == "Rollup finished"
    assert log_data["module"] == "test_module"
    assert log_data["function"] == "test_function"
    assert log_data["line"] == 42
    assert "timestamp" in log_data
    assert "extra" not in log_data


def test_json_formatter_with_extra_fields():
    record = _record()
    record.habit_id = 7
    record.day = "2025-03-01"

    log_data = json.loads(JSONFormatter().format(record))

    assert log_data["extra"] == {"habit_id": 7, "day": "2025-03-01"}


def test_json_formatter_with_exception():
    """JSONFormatter includes exception type, message and traceback."""
    try:
        raise ValueError("Test error")
    except ValueError:
        exc_info = sys.exc_info()

    log_data = json.loads(
        JSONFormatter().format(_record(level=logging.ERROR, msg="Rollup failed", exc_info=exc_info))
    )

    assert log_data["exception"]["type"] == "ValueError"
    assert "Test error" in log_data["exception"]["message"]
    assert log_data["exception"]["traceback"] is not None


def test_setup_logging(config, tmp_path):
    """Logging setup creates a JSON log file under the data directory."""
    logger = setup_logging(config)

    assert logger.name == "ascend"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2

    log_file = tmp_path / "logs" / "ascend.log"
    assert log_file.exists()

    get_logger("services.rollup").warning("Habit skipped", extra={"habit_id": 3})
    for handler in logger.handlers:
        handler.flush()

    lines = [line for line in log_file.read_text().splitlines() if line.strip()]
    entries = [json.loads(line) for line in lines]
    assert entries[0]["message"] == "Logging initialized"
    assert entries[-1]["logger"] == "ascend.services.rollup"
    assert entries[-1]["extra"] == {"habit_id": 3}


def test_setup_logging_is_idempotent(config):
    setup_logging(config)
    logger = setup_logging(config)

    assert len(logger.handlers) == 2


def test_get_logger():
    """get_logger nests loggers under the package logger."""
    logger1 = get_logger("services.checkins")
    logger2 = get_logger("admin")

    assert logger1.name == "ascend.services.checkins"
    assert logger2.name == "ascend.admin"
    assert logger1 is not logger2


@pytest.mark.parametrize("dev_mode", [True, False])
def test_logging_levels_by_mode(config, dev_mode):
    """Console logging level adjusts based on dev mode."""
    config.DEV_MODE = dev_mode

    logger = setup_logging(config)

    console_handlers = [
        handler
        for handler in logger.handlers
        if isinstance(handler, logging.StreamHandler)
        and not isinstance(handler, logging.handlers.RotatingFileHandler)
    ]
    assert len(console_handlers) == 1
    assert console_handlers[0].level == (logging.INFO if dev_mode else logging.WARNING)
