"""Logging configuration for the media storage service."""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

from src.config.settings import Settings

# Attributes every LogRecord carries; anything else came in through `extra=`
_STANDARD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName",
    "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "taskName",
})


class JsonFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = "".join(traceback.format_exception(*record.exc_info))
            log_entry["exception_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Unknown"

        return json.dumps(log_entry, default=str, ensure_ascii=False)


def setup_logging(settings: Settings) -> None:
    """
    Configure root and uvicorn loggers to write to stdout.

    LOG_FORMAT=json gives one JSON object per line; anything else uses a
    plain text format for local development.
    """
    log_level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    if settings.LOG_FORMAT == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.setLevel(log_level)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False
