"""Structured JSON logger for trackdiff.

Every log record is emitted as a single-line JSON object so that diff and
apply diagnostics can be collected next to the host application's logs.

Typical structured output::

    {"ts": "2026-03-01T12:00:00.123456+00:00", "level": "WARNING",
     "logger": "trackdiff.track.mapper",
     "message": "position mapping failed",
     "change_id": "change-3", "char_start": 120, "index_length": 96}

Usage::

    from trackdiff.observability import get_logger

    log = get_logger("trackdiff.track")
    log.info("batch applied", extra={"extra_fields": {"success": 4}})
"""

from __future__ import annotations

import dataclasses
import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class StructuredFormatter(logging.Formatter):
    """Format log records as single-line JSON objects.

    Guaranteed keys are ``ts`` (ISO-8601 UTC), ``level``, ``logger`` and
    ``message``.  Fields passed through ``extra={"extra_fields": {...}}``
    are merged into the top-level object; ``exception`` and ``stack_info``
    appear when the record carries them.  Enum members are written as
    their value and dataclasses (ranges, marks) as objects.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields: dict[str, Any] | None = getattr(
            record, "extra_fields", None
        )
        if extra_fields is not None:
            log_entry.update(extra_fields)

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_entry["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(log_entry, default=_json_default)


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return str(value)


# ---------------------------------------------------------------------------
# One handler per logger name; get_logger is idempotent.
# ---------------------------------------------------------------------------
_configured_loggers: set[str] = set()
_default_level: int = logging.DEBUG


def resolve_level(level: int | str) -> int:
    """Turn a level name or number into a number.

    Raises
    ------
    ValueError
        If *level* is a string that is not a standard level name.
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unknown log level {level!r}")
    return resolved


def set_log_level(level: int | str) -> None:
    """Set the level of every :func:`get_logger` logger, present and future."""
    global _default_level
    _default_level = resolve_level(level)
    for name in _configured_loggers:
        logging.getLogger(name).setLevel(_default_level)


def get_logger(
    name: str = "trackdiff",
    *,
    level: int | str | None = None,
    stream: Any | None = None,
) -> logging.Logger:
    """Get or create a structured JSON logger.

    Parameters
    ----------
    name:
        Logger name.  Defaults to ``"trackdiff"``.  Modules pass their own
        dotted name, e.g. ``"trackdiff.track.applicator"``.
    level:
        Minimum log level, as an ``int`` or a case-insensitive string.
        Defaults to the level last passed to :func:`set_log_level`, or
        ``DEBUG`` when it was never called.
    stream:
        Output stream for the handler.  Defaults to ``sys.stderr``.

    Returns
    -------
    logging.Logger
        A logger with a :class:`StructuredFormatter` handler attached.
        Repeated calls with the same *name* never add duplicate handlers.
    """
    logger = logging.getLogger(name)

    if name not in _configured_loggers:
        logger.setLevel(_default_level if level is None else resolve_level(level))

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        logger.propagate = False

        _configured_loggers.add(name)

    return logger
