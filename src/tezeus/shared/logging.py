"""
Structured logging for the API and the client layer.

structlog renders JSON in staging/prod and console output in dev; stdlib
records (uvicorn, SQLAlchemy) go through python-json-logger so both streams
share one format. Request identity is carried in structlog contextvars.
Emails and phone numbers are masked outside dev.
"""

from __future__ import annotations

import contextlib
import datetime
import logging
import logging.config
import re
import sys
import time
from typing import Any, Optional

import structlog

from tezeus.config import get_settings

# ---------------------------------------------------------------------
# PII redaction
# ---------------------------------------------------------------------


class PIIRedactionProcessor:
    """
    Masks PII in every string of the event, recursively.
    - Email: local part replaced, domain kept.
    - Phone: first 2 and last 4 digits kept.
    """
    P_EMAIL = re.compile(r"\b([A-Za-z0-9._%+-]+)@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")
    # WhatsApp numbers arrive as bare digits, optionally with a leading +
    P_MSISDN = re.compile(r"(?<![\w-])\+?[1-9]\d{9,14}(?![\w-])")

    def __call__(self, logger, method_name, event_dict):
        return self._redact(event_dict)

    def _redact(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._redact(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._redact(v) for v in value]
        if isinstance(value, str):
            masked = self.P_EMAIL.sub(lambda m: f"***@{m.group(2)}", value)
            return self.P_MSISDN.sub(lambda m: f"{m.group(0)[:2]}****{m.group(0)[-4:]}", masked)
        return value


# ---------------------------------------------------------------------
# Context processors
# ---------------------------------------------------------------------


class CorrelationIdProcessor:
    """correlation_id is the bound request id unless one was bound explicitly."""
    def __call__(self, logger, method_name, event_dict):
        ctx = structlog.contextvars.get_contextvars()
        cid = ctx.get("correlation_id") or ctx.get("request_id")
        if cid:
            event_dict.setdefault("correlation_id", cid)
        return event_dict


def add_request_context(logger, method_name, event_dict):
    ctx = structlog.contextvars.get_contextvars()
    for key in ("user_id", "workspace_id", "path", "method", "status_code", "client_ip"):
        if key in ctx:
            event_dict[key] = ctx[key]
    return event_dict


def add_timestamp(logger, method_name, event_dict):
    event_dict["timestamp"] = datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")
    return event_dict


# ---------------------------------------------------------------------
# Request context binding
# ---------------------------------------------------------------------


def bind_request_context(**fields: Any) -> None:
    """Bind request fields (None values are skipped) for every log line of this task."""
    payload = {k: v for k, v in fields.items() if v is not None}
    if payload:
        structlog.contextvars.bind_contextvars(**payload)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextlib.contextmanager
def time_block(name: str, *, logger: Optional[structlog.stdlib.BoundLogger] = None, **labels: Any):
    """Log the wall time of the wrapped block in milliseconds."""
    log = logger or get_logger("performance")
    started = time.perf_counter()
    try:
        yield
    finally:
        log.info("timed_block", block=name, elapsed_ms=round((time.perf_counter() - started) * 1000.0, 2), **labels)


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------

# library loggers kept below the app level; errors still surface
_QUIET_LOGGERS = {
    "uvicorn.access": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "httpx": "WARNING",
    "aiosqlite": "WARNING",
}


def _log_format(settings) -> str:
    if settings.LOG_FORMAT in ("json", "console"):
        return settings.LOG_FORMAT
    return "console" if settings.is_dev else "json"


def setup_logging() -> None:
    """Configure stdlib logging and structlog. Safe to call more than once."""
    settings = get_settings()
    fmt = _log_format(settings)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
            "console": {"format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s"},
        },
        "handlers": {
            "stdout": {"class": "logging.StreamHandler", "formatter": fmt, "stream": sys.stdout},
        },
        "root": {"level": settings.LOG_LEVEL.upper(), "handlers": ["stdout"]},
        "loggers": {name: {"level": level} for name, level in _QUIET_LOGGERS.items()},
    })

    processors = [
        structlog.contextvars.merge_contextvars,
        add_timestamp,
        add_request_context,
        CorrelationIdProcessor(),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    # local runs keep raw phones/emails for debugging
    if settings.is_prod or settings.is_staging:
        processors.append(PIIRedactionProcessor())
    processors += [
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_security_event(event_type: str, *, user_id: Any = None, workspace_id: Any = None, **details: Any) -> None:
    """Membership denials, forced logouts and other access decisions."""
    get_logger("security").warning(
        "security_event",
        event_type=event_type,
        user_id=str(user_id) if user_id is not None else None,
        workspace_id=str(workspace_id) if workspace_id is not None else None,
        **details,
    )
