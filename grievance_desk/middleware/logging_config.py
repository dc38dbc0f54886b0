"""
Logging setup for Grievance Desk.

Every record emitted inside a request is stamped with the caller (office,
actor, role) and the request id by ``CallerContextFilter``. Services add
``task_id`` / ``event_id`` through ``extra=``.

Output is a single-line coloured format in development and testing, and one
JSON object per line in production.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Who and what a record is about, in display order.
CONTEXT_FIELDS = ("request_id", "tenant_id", "actor_id", "role", "task_id", "event_id")

# Access-log fields set by the timing middleware.
HTTP_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr")

_SHORT_NAMES = {"tenant_id": "office", "actor_id": "actor", "task_id": "task", "event_id": "event"}


def record_context(record: logging.LogRecord) -> dict:
    """Context fields present on *record*, skipping unset ones."""
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class CallerContextFilter(logging.Filter):
    """Copy the request's caller context onto records that lack it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        caller = getattr(g, "caller", None)
        values = {"request_id": getattr(g, "request_id", None)}
        if caller is not None:
            values.update(tenant_id=caller.tenant_id, actor_id=caller.actor_id, role=caller.role)
        for key, value in values.items():
            if getattr(record, key, None) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; caller context nested under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
        }
        context = record_context(record)
        if context:
            entry["context"] = context
        for key in HTTP_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [12ms] office=1 actor=7 task=5``"""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.color:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        parts = [f"{stamp} {level} {record.name}: {record.getMessage()}"]
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"[{duration:.0f}ms]")
        for key, value in record_context(record).items():
            if key in ("request_id", "role"):
                continue
            parts.append(f"{_SHORT_NAMES[key]}={value}")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def resolve_level(app) -> str:
    """LOG_LEVEL from the environment, then app config, then a per-mode default."""
    default = "DEBUG" if app.debug or app.testing else "INFO"
    name = os.getenv("LOG_LEVEL") or app.config.get("LOG_LEVEL") or default
    name = name.upper()
    return name if isinstance(logging.getLevelName(name), int) else "INFO"


def configure_logging(app):
    """Install one stderr handler on the root logger for *app*."""
    production = not (app.debug or app.testing)
    level_name = resolve_level(app)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter(color=sys.stderr.isatty()))
    handler.addFilter(CallerContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level_name)
    app.logger.setLevel(level_name)

    for chatty in ("werkzeug", "sqlalchemy.engine"):
        logging.getLogger(chatty).setLevel(logging.WARNING)

    if not app.testing:
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "json" if production else "readable")
