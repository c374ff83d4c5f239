"""Logging setup for the webhook process.

Modules log through ``logging.getLogger(__name__)`` and pass structured
fields with ``extra=``. The formatters here render those fields either as a
single JSON object per line or as trailing ``key=value`` pairs.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

PACKAGE_LOGGER = "ndots_webhook"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}


def parse_level(level: Optional[str]) -> int:
    """Map a level name to a logging level; unknown names mean INFO."""
    return _LEVELS.get(str(level or "").strip().lower(), logging.INFO)


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the structured fields attached to a record via ``extra=``."""
    return {k: v for k, v in vars(record).items() if k not in _RESERVED}


def _utc_timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%S.%fZ"
    )


class JsonFormatter(logging.Formatter):
    """One JSON object per record with time, level, logger, msg and extras."""

    def format(self, record):
        payload: Dict[str, Any] = {
            "time": _utc_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(record_fields(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable line with extras appended as key=value pairs."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def formatTime(self, record, datefmt=None):
        return _utc_timestamp(record)

    def format(self, record):
        line = super().format(record)
        fields = record_fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def init_logging(level: str = "info", fmt: str = "json", stream: Optional[TextIO] = None) -> None:
    """Configure the package logger.

    Calling this again replaces the handler installed by the previous call,
    so tests and the CLI can reconfigure freely.

    Args:
        level: debug, info, warn/warning or error (case-insensitive)
        fmt: "json" or "text"; anything else means json
        stream: Output stream (default: stdout)
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(parse_level(level))

    for handler in list(logger.handlers):
        if getattr(handler, "_ndots_webhook", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(TextFormatter() if str(fmt).lower() == "text" else JsonFormatter())
    handler._ndots_webhook = True
    logger.addHandler(handler)
    logger.propagate = False
