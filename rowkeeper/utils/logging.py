"""
Logging setup for rowkeeper.

Library modules only call `get_logger(__name__)` and pass context through
``extra=`` (entity name, record id, statement params). Handlers are installed
by applications or by the CLI through `configure_logging`.

Rendered SQL is logged at DEBUG by the ``rowkeeper.drivers`` loggers and is
switched on separately with ``log_sql`` so that DEBUG lifecycle output does
not drown in statements.

Usage:
    from rowkeeper.utils.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", log_sql=True)
    log = get_logger(__name__)
    log.debug("inserted", extra={"entity": "person", "id": 7})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

SQL_LOGGER = "rowkeeper.drivers"

# Attributes present on every LogRecord; anything else came in through `extra=`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    """Collect the ``extra=`` fields attached to a record."""
    context = {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and key != "extra"
    }
    # older call sites pass extra={"extra": {...}}
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        context.update(nested)
    return context


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as JSON string."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    payload.update(_context(record))
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    """One JSON object per line, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class ConsoleFormatter(logging.Formatter):
    """Human formatter that appends ``key=value`` context after the message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if context:
            line += " | " + " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return line


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_sql: bool = False,
) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name for rowkeeper and application loggers.
    json_logs : bool
        Emit JSON lines instead of the console format.
    log_sql : bool
        Also emit the DEBUG statements logged by the drivers, whatever
        ``level`` is.
    """
    formatter_name = "json" if json_logs else "console"
    if log_sql:
        sql_level: Any = "DEBUG"
    else:
        # statements stay hidden even when the rest of rowkeeper logs at DEBUG
        sql_level = max(logging.getLevelName(level.upper()), logging.INFO)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "()": ConsoleFormatter,
                    "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": formatter_name,
                    "level": "DEBUG" if log_sql else level,
                }
            },
            "loggers": {
                SQL_LOGGER: {"level": sql_level},
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the given name. If name is None, returns the root logger.
    """
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter", "ConsoleFormatter", "SQL_LOGGER"]
