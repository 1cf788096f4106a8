"""
DevThon Portal — Logging setup

Configures the stdlib ``logging`` tree for the API: human readable lines in
development, one JSON object per line in production. Every record carries the
current request id (set by the correlation middleware in main.py) and
structured ``extra`` fields are scrubbed of credentials before they are emitted.
"""

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SERVICE_NAME = "devthon-api"
ROOT_LOGGER = "devthon"

SENSITIVE_KEYS = ("password", "token", "secret", "authorization")
REDACTED = "[REDACTED]"

# Attributes every LogRecord has; anything else came in through ``extra=``.
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "request_id",
}

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: Optional[str]) -> contextvars.Token:
    return _request_id_var.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    _request_id_var.reset(token)


def get_request_id() -> Optional[str]:
    return _request_id_var.get()


def redact(value: Any) -> Any:
    """Recursively replace values whose key looks like a credential."""
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            if any(marker in str(key).lower() for marker in SENSITIVE_KEYS):
                cleaned[key] = REDACTED
            else:
                cleaned[key] = redact(item)
        return cleaned
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS and not k.startswith("_")}


class RequestContextFilter(logging.Filter):
    """Stamp the active request id on each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class RedactingFilter(logging.Filter):
    """Scrub sensitive keys out of structured extras."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _extra_fields(record).items():
            if any(marker in key.lower() for marker in SENSITIVE_KEYS):
                setattr(record, key, REDACTED)
            elif isinstance(value, (dict, list, tuple)):
                setattr(record, key, redact(value))
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "service": SERVICE_NAME,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        extras = _extra_fields(record)
        if extras:
            entry["metadata"] = extras
        if record.exc_info:
            entry["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
            }
            entry["stack_trace"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__("%(asctime)s [%(name)s] %(levelname)s %(message)s [rid=%(request_id)s]")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extra_fields(record)
        if extras:
            line = f"{line} {json.dumps(extras, default=str)}"
        return line


def configure_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """Install a single stream handler on the ``devthon`` logger tree."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.addFilter(RedactingFilter())
    handler.setFormatter(JsonFormatter() if json_output else TextFormatter())
    logger.addHandler(handler)
    return logger
