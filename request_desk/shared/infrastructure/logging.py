"""
Structured Logging
==================

One JSON object per line on stdout. Every record carries the service name,
the environment and, when the HTTP middleware supplied one, the correlation
id. Values under credential-like keys are masked before they are written.

Usage:
    from request_desk.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Request submitted", extra={"request_id": str(request_id)})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "request-desk"
REDACTED = "***REDACTED***"

_SECRET_MARKERS = ("password", "token", "api_key", "apikey", "authorization")
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
}


def _is_secret(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _SECRET_MARKERS)


class RequestDeskJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps service context and masks credentials."""

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        log_record["service"] = SERVICE_NAME
        log_record["environment"] = self.environment
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id:
            log_record["correlation_id"] = correlation_id

        for key in [k for k in log_record if _is_secret(k)]:
            log_record[key] = REDACTED


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Route the root logger to stdout through the JSON formatter.

    Safe to call more than once; existing root handlers are replaced.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        RequestDeskJsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            environment=environment,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **context: Any) -> Iterator[None]:
    """
    Log how long the enclosed block took, whether or not it raised.

    Usage:
        with log_latency(logger, "identity.sign_in"):
            response = await client.post(...)
    """
    started = time.perf_counter()
    failed = False
    try:
        yield
    except BaseException:
        failed = True
        raise
    finally:
        logger.info(
            f"{operation} {'failed' if failed else 'completed'}",
            extra={
                "operation": operation,
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                "failed": failed,
                **context,
            },
        )
