"""
Accounts Controllers (API Routes)
=================================

FastAPI routes for registration, sign-in and the current caller.

Controllers delegate to AccountService.
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from request_desk.accounts.application import (
    AccountService,
    MeResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
    UserInfo,
)
from request_desk.accounts.domain import CallerContext, IdentityUser, view_for
from request_desk.accounts.interfaces.dependencies import get_account_service, get_caller
from request_desk.config import Role
from request_desk.infrastructure.database import get_session
from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["Accounts"])


# ========== Example payloads for Swagger ==========

SESSION_RESPONSE_EXAMPLE = {
    "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
    "token_type": "bearer",
    "refresh_token": "v1.MRjW9yX2...",
    "expires_in": 3600,
    "user": {
        "id": "6f1c2d9e-4b7a-4f43-9b0e-2a7d5c1e8f30",
        "email": "amina.yusuf@example.org",
        "display_name": "Amina Yusuf"
    },
    "role": "submitter",
    "view": "submitter"
}


def _user_info(user: IdentityUser) -> UserInfo:
    return UserInfo(id=user.id, email=user.email, display_name=user.display_name)


# ========== Route Handlers ==========

@router.post(
    "/signup",
    response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description="""
    Register with the identity provider and record the account's role.

    New accounts are submitters unless `role` is `handler`. Handler sign-up
    can be switched off with `ALLOW_HANDLER_SIGNUP=false`.
    """,
    responses={
        201: {"description": "Account created"},
        422: {"description": "Invalid payload or handler self-registration disabled"}
    }
)
async def sign_up(
    payload: SignUpRequest,
    db: AsyncSession = Depends(get_session),
    service: AccountService = Depends(get_account_service)
):
    user, role = await service.sign_up(
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=Role(payload.role),
    )
    await db.commit()

    return SignUpResponse(user=_user_info(user), role=role.value)


@router.post(
    "/signin",
    response_model=SessionResponse,
    summary="Sign in with email and password",
    description="""
    Exchange credentials for an access token and resolve the effective role.

    The role is `handler` if a handler grant exists, otherwise `submitter`.
    `view` names the UI the caller should be routed to.
    """,
    responses={
        200: {
            "description": "Signed in",
            "content": {
                "application/json": {
                    "example": SESSION_RESPONSE_EXAMPLE
                }
            }
        },
        401: {"description": "Invalid credentials"}
    }
)
async def sign_in(
    payload: SignInRequest,
    service: AccountService = Depends(get_account_service)
):
    session, role = await service.sign_in(payload.email, payload.password)

    return SessionResponse(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user=_user_info(session.user),
        role=role.value,
        view=view_for(role),
    )


@router.post(
    "/signout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke the current session"
)
async def sign_out(
    caller: CallerContext = Depends(get_caller),
    service: AccountService = Depends(get_account_service)
):
    await service.sign_out(caller)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current caller and role"
)
async def me(
    request: Request,
    caller: CallerContext = Depends(get_caller),
    service: AccountService = Depends(get_account_service)
):
    role = await service.current_role(caller)

    logger.debug(
        "Resolved caller role",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "user_id": str(caller.uid),
            "role": role.value
        }
    )

    return MeResponse(
        user=UserInfo(id=caller.uid, email=caller.email, display_name=caller.display_name),
        role=role.value,
        view=view_for(role),
    )


# Export router
accounts_router = router
