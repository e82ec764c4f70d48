"""
Structured logging for the vesting engine.

Every record is written twice when a log directory is configured: once as a
JSON line (``<name>.json.log``) for machine consumption and once as plain
text (``<name>.log``). Both files rotate at UTC midnight. Beneficiary
addresses are shortened and credential-like fields are redacted before a
record leaves the process.
"""

import json
import logging
import os
import secrets
import threading
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict, Optional

correlation_id: ContextVar[Optional[str]] = ContextVar("rowa_correlation_id", default=None)

# Our level names mapped onto the stdlib ones.
LEVELS: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

REDACTED_MARKERS = ("private_key", "password", "secret", "api_key", "signature")

TEXT_FORMAT = "[%(asctime)s UTC] %(levelname)-8s [%(correlation_id)s] %(message)s"


def shorten_address(address: str) -> str:
    if not address or len(address) < 10:
        return "UNKNOWN"
    return address[:6] + "..." + address[-4:]


def redact(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``fields`` with credential-like keys masked, recursing into dicts."""
    clean: Dict[str, Any] = {}
    for key, value in fields.items():
        lowered = key.lower()
        if any(marker in lowered for marker in REDACTED_MARKERS):
            clean[key] = "REDACTED"
        elif isinstance(value, dict):
            clean[key] = redact(value)
        else:
            clean[key] = value
    return clean


class JSONFormatter(logging.Formatter):
    """One JSON object per line; fields from ``extra_fields`` are merged at top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}.{record.funcName}:{record.lineno}",
            "thread": threading.current_thread().name,
        }
        current = correlation_id.get()
        if current:
            payload["correlation_id"] = current
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        payload.update(getattr(record, "extra_fields", {}))
        return json.dumps(payload, default=str)


class CorrelationIDFilter(logging.Filter):
    """Exposes the active correlation id to ``%(correlation_id)s`` in text formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "NO-ID"
        return True


def _rotating_handler(path: str, backup_count: int) -> TimedRotatingFileHandler:
    return TimedRotatingFileHandler(
        path, when="midnight", backupCount=backup_count, encoding="utf-8", utc=True
    )


class StructuredLogger:
    """
    Wrapper around a stdlib logger that emits structured vesting records.

    Keyword arguments passed to any level method become top-level fields of
    the JSON record. Without ``log_dir`` no handlers are attached and records
    simply propagate to whatever the host application configured.
    """

    def __init__(
        self,
        name: str = "ROWA_Vesting",
        log_dir: Optional[str] = None,
        log_level: str = "INFO",
        backup_count: int = 30,
    ):
        self.name = name
        self.logger = logging.getLogger(name)
        level = log_level.upper()
        self.logger.setLevel(LEVELS.get(level, level))
        if log_dir and not self.logger.handlers:
            self._attach_files(log_dir, backup_count)
        self.log_counts: Dict[str, int] = dict.fromkeys(LEVELS, 0)

    def _attach_files(self, log_dir: str, backup_count: int) -> None:
        os.makedirs(log_dir, exist_ok=True)
        stem = os.path.join(log_dir, self.name.lower())

        json_handler = _rotating_handler(stem + ".json.log", backup_count)
        json_handler.setFormatter(JSONFormatter())

        text_formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        text_formatter.converter = time.gmtime
        text_handler = _rotating_handler(stem + ".log", backup_count)
        text_handler.setFormatter(text_formatter)
        text_handler.addFilter(CorrelationIDFilter())

        for handler in (json_handler, text_handler):
            self.logger.addHandler(handler)

    def _emit(self, level: str, message: str, fields: Dict[str, Any]) -> None:
        self.log_counts[level] += 1
        extra = {"extra_fields": redact(fields)} if fields else None
        self.logger.log(LEVELS[level], message, extra=extra)

    def debug(self, message: str, **fields):
        self._emit("DEBUG", message, fields)

    def info(self, message: str, **fields):
        self._emit("INFO", message, fields)

    def warn(self, message: str, **fields):
        self._emit("WARN", message, fields)

    def error(self, message: str, **fields):
        self._emit("ERROR", message, fields)

    def schedule_event(
        self,
        event_type: str,
        schedule_id: str,
        beneficiary: str,
        category: str,
        amount: int,
        **fields,
    ):
        """Record a schedule being created or revoked."""
        self.info(
            f"schedule {event_type}: {schedule_id[:18]}",
            event_type=event_type,
            schedule_id=schedule_id,
            beneficiary=shorten_address(beneficiary),
            category=category,
            amount=amount,
            **fields,
        )

    def release_event(self, schedule_id: str, beneficiary: str, amount: int, released_total: int):
        self.info(
            f"released {amount} from {schedule_id[:18]}",
            event_type="released",
            schedule_id=schedule_id,
            beneficiary=shorten_address(beneficiary),
            amount=amount,
            released_total=released_total,
        )

    def security_event(self, event_type: str, severity: str = "WARN", **fields):
        """Rejected privileged or beneficiary-only calls. ``severity`` is WARN or ERROR."""
        level = "ERROR" if severity.upper() == "ERROR" else "WARN"
        self._emit(level, f"SECURITY: {event_type}", dict(fields, event_type=event_type, security_event=True))

    def get_stats(self) -> Dict[str, Any]:
        return {"log_counts": dict(self.log_counts), "total_logs": sum(self.log_counts.values())}


class LogContext:
    """
    Binds a correlation id to every record logged inside the ``with`` block.

        with LogContext("req-42"):
            manager.release_all(schedule_id, caller)
    """

    def __init__(self, custom_id: Optional[str] = None):
        self.correlation_id = custom_id or secrets.token_hex(8)
        self._token = None

    def __enter__(self):
        self._token = correlation_id.set(self.correlation_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        correlation_id.reset(self._token)


_default_logger: Optional[StructuredLogger] = None


def get_structured_logger(name: str = "ROWA_Vesting") -> StructuredLogger:
    """Process-wide logger; writes files only when ``ROWA_LOG_DIR`` is set."""
    global _default_logger
    if _default_logger is None:
        _default_logger = StructuredLogger(
            name,
            log_dir=os.getenv("ROWA_LOG_DIR") or None,
            log_level=os.getenv("ROWA_LOG_LEVEL", "INFO"),
        )
    return _default_logger
