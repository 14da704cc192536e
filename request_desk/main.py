"""
Request Desk - Main Application
===============================

Department request tracking service.

Bounded contexts:
- accounts: sign-up, sign-in and role resolution
- requests: submission, keyword classification, triage, comments, live refresh

Every context is split into interfaces (routers), application (services,
DTOs), domain (entities, classifier) and infrastructure (models,
repositories, adapters).
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from request_desk.config import settings
from request_desk.core import ConfigurationException
from request_desk.infrastructure.database import (
    init_database, close_database, create_tables, get_change_feed, get_engine
)
from request_desk.accounts.infrastructure.identity import GoTrueIdentityProvider
from request_desk.accounts.interfaces import accounts_router
from request_desk.requests.interfaces import requests_router
from request_desk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    install_exception_handlers
)
from request_desk.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Wire process-wide resources.

    Startup refuses to continue without the required settings. A database
    that is configured but unreachable only degrades /health.
    """
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Request Desk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    missing = settings.missing_required()
    if missing:
        logger.error("Missing required configuration", extra={"missing": missing})
        raise ConfigurationException(
            "Missing required configuration",
            details={"missing": [name.upper() for name in missing]}
        )

    init_database()
    try:
        await create_tables()
    except Exception as e:
        logger.warning("Schema check failed, serving in degraded mode", extra={"error": str(e)})

    identity_provider = GoTrueIdentityProvider(
        base_url=settings.identity_url,
        api_key=settings.identity_api_key,
        timeout_seconds=settings.identity_timeout_seconds
    )
    app.state.identity_provider = identity_provider
    app.state.settings = settings
    logger.info("Request Desk ready")

    yield

    logger.info("Stopping Request Desk")
    await identity_provider.close()
    await close_database()


app = FastAPI(
    title="Request Desk API",
    description="""
    ## Department Request Tracking

    Employees file requests; handlers triage, update and comment on them.

    ### Accounts

    - `POST /auth/signup` - Register (submitter by default)
    - `POST /auth/signin` - Sign in and resolve role
    - `POST /auth/signout` - Revoke the current session
    - `GET /auth/me` - Current caller and role

    ### Requests

    - `POST /requests` - Submit; category, priority and routing come from the keyword classifier
    - `GET /requests` - List visible requests (`q`, `category`, `status`, `priority`)
    - `GET /requests/stats` - Counts by status plus critical
    - `POST /requests/classify` - Classifier preview
    - `GET|PATCH|DELETE /requests/{id}` - Read, triage, delete
    - `GET|POST /requests/{id}/comments` - Comment thread
    - `GET /requests/live`, `GET /requests/{id}/comments/live` - Server-Sent Events

    ### Access rules

    | Table | Operation | Allowed when |
    |-------|-----------|--------------|
    | requests | insert | caller is the submitter |
    | requests | select | caller is the submitter, or a handler |
    | requests | update / delete | caller is a handler |
    | request_comments | insert | caller is the author and owns the request, or is a handler |
    | request_comments | select | caller owns the request, or is a handler |
    | user_roles | insert / select | row belongs to the caller |
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
# Last added runs outermost: correlation ids exist before the access log line
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
install_exception_handlers(app)

app.include_router(accounts_router)
app.include_router(requests_router)


HEALTH_EXAMPLE = {
    "status": "healthy",
    "version": "1.0.0",
    "environment": "production",
    "checks": {
        "database": "connected",
        "identity_provider": "configured",
        "live_subscribers": 3
    }
}


@app.get("/health", tags=["Health"], responses={
    200: {"description": "Service status", "content": {"application/json": {"example": HEALTH_EXAMPLE}}}
})
async def health_check(request: Request):
    """Database reachability, identity client presence and open live streams."""
    identity_configured = getattr(request.app.state, "identity_provider", None) is not None
    checks = {
        "database": "connected",
        "identity_provider": "configured" if identity_configured else "not_configured",
        "live_subscribers": 0
    }

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["live_subscribers"] = get_change_feed().subscriber_count
    except Exception as e:
        checks["database"] = f"error: {e}"

    return {
        "status": "healthy" if checks["database"] == "connected" else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    return {
        "service": "Request Desk",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "accounts": {
                "prefix": "/auth",
                "routes": ["POST /signup", "POST /signin", "POST /signout", "GET /me"]
            },
            "requests": {
                "prefix": "/requests",
                "routes": [
                    "POST /", "GET /", "GET /stats", "POST /classify", "GET /live",
                    "GET /{id}", "PATCH /{id}", "DELETE /{id}",
                    "GET /{id}/comments", "POST /{id}/comments", "GET /{id}/comments/live"
                ]
            }
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "request_desk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
