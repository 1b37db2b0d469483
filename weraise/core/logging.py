"""Logging setup: text or JSON output, request-id correlation, secret redaction."""

import json
import logging
import re
from datetime import UTC, datetime
from typing import Any

from weraise.core.middleware.request_id import get_request_id

SENSITIVE_KEY = re.compile(r"password|secret|token|authorization|api[_-]?key", re.IGNORECASE)

REDACTED = "***REDACTED***"

_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "request_id",
}


def redact_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively replace values whose key looks sensitive."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if SENSITIVE_KEY.search(key):
            result[key] = REDACTED
        elif isinstance(value, dict):
            result[key] = redact_dict(value)
        else:
            result[key] = value
    return result


def redact_string(text: str) -> str:
    """Redact bearer tokens and key=value secrets from free-form text."""
    text = re.sub(r"(Bearer\s+)\S+", r"\1" + REDACTED, text, flags=re.IGNORECASE)
    text = re.sub(
        r"((?:password|secret|token)[\s=:]+)\S+",
        r"\1" + REDACTED,
        text,
        flags=re.IGNORECASE,
    )
    return text


class RequestIdFilter(logging.Filter):
    """Attach the current X-Request-Id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_string(record.getMessage()),
        }
        request_id = getattr(record, "request_id", None)
        if request_id:
            entry["request_id"] = request_id
        entry["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        extras = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
        if extras:
            entry["extra"] = redact_dict(extras)
        return json.dumps(entry, default=str)


class RedactingFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        return redact_string(super().format(record))


def setup_logging(level: str = "INFO", log_format: str = "text") -> None:
    """Configure the root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        log_format: "json" for structured output, anything else for text.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if log_format == "json" else RedactingFormatter())
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
