"""
Accounts Application Layer
==========================

Application layer for the accounts module.

Contains:
- Services: Sign-up, sign-in and role resolution
- DTOs: Data transfer objects for API serialization
"""

from request_desk.accounts.application.dto import (
    SignUpRequest,
    SignInRequest,
    UserInfo,
    SignUpResponse,
    SessionResponse,
    MeResponse
)
from request_desk.accounts.application.services import (
    AccountService,
    IRoleRepository,
    IIdentityProvider
)

__all__ = [
    # DTOs
    "SignUpRequest",
    "SignInRequest",
    "UserInfo",
    "SignUpResponse",
    "SessionResponse",
    "MeResponse",
    # Services
    "AccountService",
    # Interfaces
    "IRoleRepository",
    "IIdentityProvider",
]
