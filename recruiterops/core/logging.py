"""
Structured logging for the recruiterops logger.

JSON lines in production, one-line pretty output elsewhere. Every record
carries the request id bound by RequestIdMiddleware. Emails are logged by
domain only; raw webhook payloads never reach the log.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "recruiterops"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Fields lifted from `extra=` into JSON output
_EXTRA_FIELDS = (
    "user_id",
    "email_domain",
    "event_type",
    "error_code",
    "status",
    "path",
    "method",
    "latency_bucket",
)

_LATENCY_BUCKETS = ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms"))


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    for upper, label in _LATENCY_BUCKETS:
        if latency_ms < upper:
            return label
    return ">=1000ms"


def truncate(value: Any, limit: int = 500) -> str:
    """str() capped at `limit` characters; never raises."""
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    return text if len(text) <= limit else text[:limit] + "...<truncated>"


def email_domain(email: Optional[str]) -> Optional[str]:
    """Log-safe representation of an email address."""
    if not email or "@" not in email:
        return None
    return email.rsplit("@", 1)[1]


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(
            (name, getattr(record, name)) for name in _EXTRA_FIELDS if getattr(record, name, None) is not None
        )
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        rid = getattr(record, "request_id", None)
        user = getattr(record, "user_id", None)
        tags = "".join(f" [{k}={v}]" for k, v in (("rid", rid), ("user", user)) if v)
        return f"{_timestamp(record)} {record.levelname} [{record.name}]{tags} {record.getMessage()}"


def configure_logging(env: str = "development") -> None:
    """Install a single stdout handler on the recruiterops logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger.handlers = [handler]
    logger.propagate = True


def log_event(
    level: str,
    msg: str,
    *,
    user_id: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """Emit `msg` on the recruiterops logger with structured fields attached."""
    fields: Dict[str, object] = {"user_id": user_id, "event_type": event_type, "error_code": error_code}
    if extra:
        fields.update({k: truncate(v) for k, v in extra.items()})
    logger = logging.getLogger(LOGGER_NAME)
    getattr(logger, level, logger.info)(msg, extra=fields)
