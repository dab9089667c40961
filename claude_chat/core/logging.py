"""
JSON logging for the backend.

Records are written to stdout as one JSON object per line. The request id
bound by ``RequestIDMiddleware`` is attached to every record emitted while the
request is handled, and ``extra=`` fields become top-level keys. Keys that may
carry initData or credentials are masked before serialization.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Final

REQUEST_ID_CTX: Final[ContextVar[str | None]] = ContextVar("request_id", default=None)

REDACTED_FIELDS: Final[frozenset[str]] = frozenset(
    {"init_data", "initData", "bot_token", "api_key", "secret_key", "authorization"}
)
REDACTED_VALUE: Final[str] = "***"

# Everything a bare LogRecord carries; the rest came in through ``extra=``.
_STANDARD_ATTRS: Final[frozenset[str]] = frozenset(
    logging.makeLogRecord({}).__dict__.keys() | {"message", "asctime", "request_id", "taskName"}
)
_QUIET_LOGGERS: Final[tuple[str, ...]] = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore")

_LOGGING_CONFIGURED: bool = False


def bind_request_id(request_id: str) -> Token[str | None]:
    return REQUEST_ID_CTX.set(request_id)


def get_request_id() -> str | None:
    return REQUEST_ID_CTX.get()


def reset_request_id(token: Token[str | None]) -> None:
    REQUEST_ID_CTX.reset(token)


class RequestContextFilter(logging.Filter):
    """Copy the current request id onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonLogFormatter(logging.Formatter):
    """One-line JSON rendering of a log record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            entry["request_id"] = request_id

        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key.startswith("_") or value is None:
                continue
            entry[key] = REDACTED_VALUE if key in REDACTED_FIELDS else _json_safe(value)

        if record.exc_info:
            entry["exc_info"] = _single_line(self.formatException(record.exc_info))
        if record.stack_info:
            entry["stack"] = _single_line(self.formatStack(record.stack_info))

        return json.dumps(entry, ensure_ascii=False, separators=(",", ":"))


def _json_safe(value: object) -> object:
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple, dict)):
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            return str(value)
        return value
    return str(value)


def _single_line(text: str) -> str:
    return text.replace("\n", " | ")


def configure_logging(level_name: str) -> None:
    """Install the JSON handler on the root logger; later calls are no-ops."""

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter())
    handler.addFilter(RequestContextFilter())

    level = logging.getLevelName(str(level_name).upper())
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level if isinstance(level, int) else logging.INFO)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    _LOGGING_CONFIGURED = True


__all__ = [
    "JsonLogFormatter",
    "REDACTED_FIELDS",
    "RequestContextFilter",
    "bind_request_id",
    "configure_logging",
    "get_request_id",
    "reset_request_id",
]
