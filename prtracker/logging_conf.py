"""Logging setup shared by the CLI and the API."""
import logging
import logging.config
from typing import Any, Optional

import orjson

from prtracker.config import config

# Attributes every LogRecord carries; anything else was passed via ``extra=``.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as a JSON string."""
    payload: dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for key, value in vars(record).items():
        if key not in _RESERVED:
            payload[key] = value
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return orjson.dumps(payload, default=str).decode()


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        return _json_formatter(record)


def setup_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure root logging from arguments, falling back to the config."""
    level = (level or config.LOG_LEVEL).upper()
    json_logs = config.LOG_JSON if json_logs is None else json_logs

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "root": {"handlers": ["default"], "level": level},
            # httpx logs every request at INFO
            "loggers": {"httpx": {"level": "WARNING"}},
        }
    )
