"""
Structured logging configuration.
Provides the application logger, correlation-aware adapters and an audit trail channel.
"""
import logging
import sys
from typing import Any, Dict, Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Guarantees every record carries a correlation_id attribute."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True


def setup_logger(name: str = "emerald", level: Optional[str] = None) -> logging.Logger:
    """Configures a named logger writing to stdout. Idempotent across imports."""
    log = logging.getLogger(name)
    log.setLevel((level or settings.LOG_LEVEL).upper())

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(CorrelationIdFilter())
        log.addHandler(handler)
        log.propagate = False

    return log


logger = setup_logger()
_audit_logger = logger.getChild("audit")


def get_logger_with_correlation(correlation_id: str) -> logging.LoggerAdapter:
    """Returns an adapter that stamps every message with the given correlation id."""
    return logging.LoggerAdapter(logger, {"correlation_id": correlation_id})


def audit_log(action: str, user: str, resource: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Emits an audit trail entry for state-changing operations."""
    details = dict(details or {})
    correlation_id = details.pop("correlation_id", "-")
    _audit_logger.info(
        "action=%s user=%s resource=%s details=%s",
        action,
        user,
        resource,
        details,
        extra={"correlation_id": correlation_id}
    )
