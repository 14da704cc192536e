"""
Accounts Dependencies
=====================

FastAPI dependencies that authenticate the caller.

Every authenticated route receives a CallerContext built from the bearer
token; nothing about the caller is kept between HTTP calls.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from request_desk.accounts.application import AccountService, IIdentityProvider
from request_desk.accounts.domain import CallerContext
from request_desk.accounts.infrastructure.repositories import SQLAlchemyRoleRepository
from request_desk.config import settings
from request_desk.core import AuthenticationException
from request_desk.infrastructure.database import get_session

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_provider(request: Request) -> IIdentityProvider:
    """Get identity provider from app state."""
    provider = getattr(request.app.state, "identity_provider", None)
    if provider is None:
        raise HTTPException(
            status_code=503,
            detail="Identity provider not configured"
        )
    return provider


async def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    identity: IIdentityProvider = Depends(get_identity_provider)
) -> CallerContext:
    """Resolve the caller from ``Authorization: Bearer <token>``."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationException()

    token = credentials.credentials
    user = await identity.get_user(token)
    return CallerContext.from_identity(user, token)


def get_account_service(
    db: AsyncSession = Depends(get_session),
    identity: IIdentityProvider = Depends(get_identity_provider)
) -> AccountService:
    return AccountService(
        identity,
        roles_for=lambda caller: SQLAlchemyRoleRepository(db, caller),
        allow_handler_signup=settings.allow_handler_signup,
    )
