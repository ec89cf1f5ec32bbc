"""
Logging Configuration with Correlation ID Support

Every log line carries the id of the request (or poller run) that produced
it, so one lead move can be followed from activation to dispatch.
"""
import logging
import uuid
from contextvars import ContextVar
from typing import Optional

# Works across awaits: each request/poller task sees its own value
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s | [%(correlation_id)s] | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: Optional[str] = None, prefix: str = "req") -> str:
    """
    Set the correlation ID for the current request or poller run.
    If not provided, generates one like ``req-1a2b3c4d``.

    Returns the correlation ID that was set.
    """
    if correlation_id is None:
        correlation_id = f"{prefix}-{uuid.uuid4().hex[:8]}"
    correlation_id_var.set(correlation_id)
    return correlation_id


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to every record passing through the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "no-request"
        return True


def setup_logging(level: int = logging.INFO) -> None:
    """
    Configure the root logger with the correlation-aware format.

    Uvicorn loggers are routed through the same handler so access logs
    and application logs share one format.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Avoid duplicate lines when called more than once
    for existing_handler in root_logger.handlers[:]:
        root_logger.removeHandler(existing_handler)

    root_logger.addHandler(handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers = []
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False
