"""Structured logging configuration with JSON output and rotation."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path

from .config import BaseConfig


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    # Standard LogRecord attributes that should not be treated as extra fields
    _STANDARD_ATTRS = {
        "name", "msg", "args", "created", "filename", "funcName", "levelname",
        "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
        "processName", "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "taskName", "asctime",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as a JSON string."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Fields passed via logger.info(..., extra={...})
        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


def setup_logging(config: BaseConfig) -> logging.Logger:
    """Configure console + rotating JSON file logging for the ``ascend`` tree.

    Args:
        config: Application configuration with DATA_DIR and DEV_MODE

    Returns:
        Configured package logger
    """
    logs_dir = Path(config.DATA_DIR) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger("ascend")
    root_logger.setLevel(logging.DEBUG if config.DEV_MODE else logging.INFO)

    # Remove existing handlers to avoid duplicates when the factory runs twice
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO if config.DEV_MODE else logging.WARNING)
    if config.DEV_MODE:
        console_format = "[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s"
    else:
        console_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    console_handler.setFormatter(
        logging.Formatter(
            fmt=console_format,
            datefmt="%H:%M:%S" if config.DEV_MODE else "%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(console_handler)

    log_file = logs_dir / "ascend.log"
    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(file_handler)

    root_logger.info(
        "Logging initialized",
        extra={
            "dev_mode": config.DEV_MODE,
            "log_file": str(log_file),
            "data_dir": config.DATA_DIR,
        },
    )

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger nested under the ``ascend`` tree.

    Args:
        name: Logger name (usually the module's short name)

    Returns:
        Logger instance
    """
    return logging.getLogger(f"ascend.{name}")
