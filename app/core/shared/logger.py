"""
Logging setup for the retention service.

``configure_logging`` installs one console handler (colored, json or plain)
and an optional JSON file handler on the root logger. Background jobs log
through ``get_job_logger`` so their records carry the job name and any bound
fields under ``extra_data``.
"""

import json
import logging
import sys
from datetime import datetime, UTC
from typing import Any

LINE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Keyword arguments that belong to Logger.log rather than to the context
_LOGGING_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        context = getattr(record, "extra_data", None)
        if context:
            payload["context"] = context
        return json.dumps(payload, default=str)


class ColoredFormatter(logging.Formatter):
    """Line formatter with an ANSI-colored level name."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if color is None:
            return super().format(record)
        # Other handlers share the record and must see the plain level name
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that merges bound context with per-call keyword fields.

    ``job_logger.error("failed", error_type="Timeout")`` emits a record whose
    ``extra_data`` is the bound context plus ``{"error_type": "Timeout"}``.
    """

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        super().__init__(logging.getLogger(name), dict(context or {}))

    def with_context(self, **fields: Any) -> "ContextLogger":
        return ContextLogger(self.logger.name, {**self.extra, **fields})

    def process(self, msg, kwargs):
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOGGING_KWARGS}
        kwargs["extra"] = {**kwargs.get("extra", {}), "extra_data": {**self.extra, **fields}}
        return msg, kwargs


def _console_formatter(format_type: str) -> logging.Formatter:
    if format_type == "json":
        return JSONFormatter()
    if format_type == "colored":
        return ColoredFormatter(LINE_FORMAT, datefmt=DATE_FORMAT)
    return logging.Formatter(LINE_FORMAT, datefmt=DATE_FORMAT)


def configure_logging(level: str = "INFO", format_type: str = "colored", log_file: str | None = None) -> None:
    """
    Replace the root logger's handlers.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 'colored', 'json' or 'plain' for the console
        log_file: When set, records are also written there as JSON
    """
    numeric_level = logging.getLevelName(level.upper())
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    handlers[0].setFormatter(_console_formatter(format_type))

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        root.addHandler(handler)


def get_job_logger(job_name: str) -> ContextLogger:
    """Logger for a background job, tagged with the job's name."""
    return ContextLogger(f"job.{job_name}", {"component": "job", "job": job_name})
