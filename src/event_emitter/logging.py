"""Structured JSON logging helpers for the event emitter."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging import Logger
from typing import Dict

_LOGGER_NAME = "event_emitter"


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        payload = {
            "ts": ts,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "event"):
            payload["event"] = getattr(record, "event")
        if hasattr(record, "payload"):
            payload["payload"] = getattr(record, "payload")
        return json.dumps(payload, ensure_ascii=False, default=repr)


def get_logger(name: str | None = None) -> Logger:
    """Return a module level logger configured for structured JSON output."""

    logger_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    logger = logging.getLogger(logger_name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
        logger.addHandler(handler)
    return logger


def set_level(level: str | int) -> None:
    """Apply ``level`` to every logger created through :func:`get_logger`."""

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger(_LOGGER_NAME)
    root.setLevel(level)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith(f"{_LOGGER_NAME}.") and isinstance(logger, Logger):
            logger.setLevel(level)


def log_event(
    logger: Logger,
    event: str,
    payload: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """Log an event payload in a consistent JSON format."""

    payload = payload or {}
    extra = {"event": event, "payload": payload}
    logger.log(level, f"event={event}", extra=extra)
