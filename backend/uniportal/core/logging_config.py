"""
University Utility Portal - Logging

One "uniportal" logger for the whole service. Development gets readable
lines, production gets one JSON object per line. Every record carries the
request id and the authenticated student id when there is one.
"""

import logging
import sys
import json
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from uniportal.core.config import settings


LOGGER_NAME = "uniportal"

request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')

# Attributes every LogRecord has; anything else arrived through extra=
_STANDARD_RECORD_KEYS = frozenset(
    logging.LogRecord('', logging.INFO, '', 0, '', None, None).__dict__
) | {'message', 'asctime', 'request_id', 'user_id'}

# Election events that change roles or remove data are logged louder
_LOUD_ELECTION_EVENTS = {"closed", "deleted"}


def get_request_id() -> str:
    return request_id_var.get() or ''


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def get_user_id() -> str:
    return user_id_var.get() or ''


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


def generate_request_id() -> str:
    return uuid.uuid4().hex[:12]


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_KEYS and not key.startswith('_')
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line; extra= fields go under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.utcnow().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
            "request_id": get_request_id() or None,
            "student_id": get_user_id() or None,
        }

        context = _extra_fields(record)
        if context:
            entry["context"] = context

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        return json.dumps(entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Plain text with the request and student ids filled in ("-" when unset)"""

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = get_request_id() or '-'
        record.user_id = get_user_id() or '-'
        return super().format(record)


class PortalLogger(logging.Logger):
    """Logger with one helper per kind of event the portal records"""

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        self.log(
            level,
            f"{method} {path} -> {status_code} ({duration_ms:.1f}ms)",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 2),
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, identifier: Optional[str] = None,
                       reason: Optional[str] = None, **kwargs) -> None:
        """register / login / refresh / logout outcomes"""
        outcome = "ok" if success else f"rejected ({reason or 'unknown'})"
        self.log(
            logging.INFO if success else logging.WARNING,
            f"Account {event} {outcome}: {identifier or '-'}",
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "auth_identifier": identifier,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_election_event(self, event: str, election_id: str, **kwargs) -> None:
        """created / voted / closed / deleted; closes and deletes log at WARNING"""
        details = " ".join(f"{key}={value}" for key, value in kwargs.items() if value not in (None, []))
        self.log(
            logging.WARNING if event in _LOUD_ELECTION_EVENTS else logging.INFO,
            f"Election {election_id} {event}" + (f" [{details}]" if details else ""),
            extra={
                "event_type": "election",
                "election_event": event,
                "election_id": election_id,
                **kwargs
            }
        )

    def log_error_with_context(self, error: Exception, context: Optional[str] = None,
                               **kwargs) -> None:
        self.error(
            f"Unhandled {type(error).__name__} in {context or 'unknown context'}: {error}",
            exc_info=error,
            extra={
                "event_type": "error",
                "error_type": type(error).__name__,
                "error_context": context,
                **kwargs
            }
        )


def setup_logging() -> PortalLogger:
    """Configure the "uniportal" logger from settings and return it"""

    # Module loggers under "uniportal." are created after this and inherit handlers
    logging.setLoggerClass(PortalLogger)

    logger = logging.getLogger(LOGGER_NAME)
    logger.__class__ = PortalLogger
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()

    json_logs = settings.is_production()
    if json_logs:
        console_formatter = file_formatter = JSONFormatter()
    else:
        console_formatter = ContextualFormatter("%(levelname)-8s | [%(request_id)s] %(name)s | %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] | "
            "%(name)s.%(funcName)s:%(lineno)d | %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        log_file = Path(settings.LOG_FILE)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.debug(f"Logging ready (environment={settings.ENVIRONMENT}, json={json_logs})")
    return logger


logger: PortalLogger = setup_logging()


__all__ = [
    'logger',
    'setup_logging',
    'get_request_id',
    'set_request_id',
    'get_user_id',
    'set_user_id',
    'generate_request_id',
    'JSONFormatter',
    'ContextualFormatter',
    'PortalLogger',
]
