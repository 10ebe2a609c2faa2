"""JSON log output for the service.

One JSON object per line with timestamp, level, logger, message and
request_id. Probe and job context passed through ``extra`` is copied into the
entry (target, method, status, duration_ms, error_reason; job_id, completed,
total).

Values of service keys, TURN passwords, tokens and authorization headers are
replaced with ``[REDACTED]`` before anything is written.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

from reachability.middleware.request_id import current_request_id

_SECRET_ASSIGNMENT = re.compile(
    r"(?P<key>service.key|turn.password|password|secret|token|credential|authorization)"
    r"(?P<sep>\s*[=:]\s*)(?:bearer\s+)?\S+",
    re.IGNORECASE,
)

_CONTEXT_FIELDS = ("target", "method", "status", "duration_ms", "job_id", "completed", "total")

# Chatty at DEBUG; the probe already logs each attempt itself.
_QUIET_LOGGERS = ("httpx", "httpcore", "aioice")


def redact(text: str) -> str:
    return _SECRET_ASSIGNMENT.sub(r"\g<key>\g<sep>[REDACTED]", text)


class RequestIdFilter(logging.Filter):
    """Stamps records with the request ID of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = current_request_id.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
            "request_id": getattr(record, "request_id", None),
        }
        entry.update(
            (name, getattr(record, name)) for name in _CONTEXT_FIELDS if hasattr(record, name)
        )
        if hasattr(record, "error_reason"):
            entry["error_reason"] = redact(str(record.error_reason))
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = redact(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO") -> None:
    """Route all logging to stderr as JSON at *level*.

    Replaces any handlers already on the root logger, so calling it twice
    (for example from tests and then from the app lifespan) does not
    duplicate output.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))
