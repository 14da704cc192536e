"""
Shared API Middleware
======================

Correlation ids, access logging and the mapping from application
exceptions to JSON error bodies.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from request_desk.core import (
    ApplicationException,
    AuthenticationException,
    ConfigurationException,
    ExternalServiceException,
    PolicyViolationException,
    ResourceNotFoundException,
    ValidationException,
)
from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# First match wins; subclasses must precede their bases.
_STATUS_BY_EXCEPTION: tuple[tuple[type[ApplicationException], int], ...] = (
    (ValidationException, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ResourceNotFoundException, status.HTTP_404_NOT_FOUND),
    (PolicyViolationException, status.HTTP_403_FORBIDDEN),
    (AuthenticationException, status.HTTP_401_UNAUTHORIZED),
    (ExternalServiceException, status.HTTP_502_BAD_GATEWAY),
    (ConfigurationException, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


def _call_context(request: Request) -> dict[str, Any]:
    return {
        "correlation_id": _correlation_id(request),
        "method": request.method,
        "path": request.url.path,
    }


def _error_body(request: Request, detail: str, **extra: Any) -> dict[str, Any]:
    return {
        "detail": detail,
        "correlation_id": _correlation_id(request),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **extra,
    }


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Correlation-ID or mint one, and echo it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    One access-log line per HTTP call.

    For event streams the line is written when the headers go out, not when
    the stream ends.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    **_call_context(request),
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - started) * 1000),
                },
            )
            raise

        logger.info(
            "Request handled",
            extra={
                **_call_context(request),
                "status_code": response.status_code,
                "client": request.client.host if request.client else None,
                "response_time_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return response


def status_for(exc: ApplicationException) -> int:
    for exc_type, status_code in _STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """
    Render an ApplicationException as JSON.

    Policy violations keep table and operation in the log line only.
    """
    status_code = status_for(exc)

    log_extra = {
        **_call_context(request),
        "error_type": type(exc).__name__,
        "error_message": exc.message,
        "status_code": status_code,
    }
    if isinstance(exc, PolicyViolationException):
        log_extra.update(policy_table=exc.table, policy_operation=exc.operation)
    logger.warning("Request rejected", extra=log_extra)

    content = _error_body(request, exc.message)
    if exc.details:
        content["details"] = exc.details

    headers = None
    if status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled exception",
        extra={**_call_context(request), "error_type": type(exc).__name__},
    )

    settings = getattr(request.app.state, "settings", None)
    debug_info = str(exc) if getattr(settings, "environment", None) == "development" else None

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "Internal server error", debug_info=debug_info),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
