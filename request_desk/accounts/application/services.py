"""
Accounts Application Services
=============================

Sign-up, sign-in and role resolution.

Orchestrates the identity provider and the role repository.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Tuple
from uuid import UUID

from request_desk.accounts.domain import (
    CallerContext, IdentitySession, IdentityUser, resolve_role
)
from request_desk.config import Role
from request_desk.core import ValidationException
from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IRoleRepository(ABC):
    """Interface for role grant storage. Grants are never updated or deleted."""

    @abstractmethod
    async def list_roles(self, user_id: UUID) -> List[str]:
        """Role names held by a user."""

    @abstractmethod
    async def create(self, user_id: UUID, role: Role) -> Any:
        """Grant a role."""


class IIdentityProvider(ABC):
    """Interface for the external identity provider."""

    @abstractmethod
    async def sign_up(self, email: str, password: str, name: str) -> IdentityUser:
        """Register a new user."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> IdentitySession:
        """Exchange credentials for a session."""

    @abstractmethod
    async def get_user(self, access_token: str) -> IdentityUser:
        """Validate an access token and return its user."""

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""


RoleRepositoryFactory = Callable[[CallerContext], IRoleRepository]


# ========== Application Services ==========

class AccountService:
    """
    Service for account lifecycle and role lookup.

    Role grants are written as the user they belong to, so the role
    repository is built per caller from ``roles_for``.
    """

    def __init__(
        self,
        identity: IIdentityProvider,
        roles_for: RoleRepositoryFactory,
        allow_handler_signup: bool = True
    ):
        self._identity = identity
        self._roles_for = roles_for
        self._allow_handler_signup = allow_handler_signup

    async def sign_up(
        self,
        email: str,
        password: str,
        name: str,
        role: Role = Role.SUBMITTER
    ) -> Tuple[IdentityUser, Role]:
        """
        Register a user and record their role.

        Raises:
            ValidationException: If a handler account is requested and
                handler self-registration is disabled
        """
        if role == Role.HANDLER and not self._allow_handler_signup:
            raise ValidationException(
                "Handler accounts cannot be self-registered",
                details={"role": role.value}
            )

        user = await self._identity.sign_up(email, password, name)
        caller = CallerContext.from_identity(user)
        await self._roles_for(caller).create(user.id, role)

        logger.info(
            "User signed up",
            extra={"user_id": str(user.id), "role": role.value}
        )
        return user, role

    async def sign_in(self, email: str, password: str) -> Tuple[IdentitySession, Role]:
        """Authenticate and resolve the effective role."""
        session = await self._identity.sign_in(email, password)
        caller = CallerContext.from_identity(session.user, session.access_token)
        role = await self.current_role(caller)

        logger.info(
            "User signed in",
            extra={"user_id": str(caller.uid), "role": role.value}
        )
        return session, role

    async def sign_out(self, caller: CallerContext) -> None:
        if caller.access_token:
            await self._identity.sign_out(caller.access_token)
        logger.info("User signed out", extra={"user_id": str(caller.uid)})

    async def current_role(self, caller: CallerContext) -> Role:
        """Handler if a handler grant exists, otherwise submitter."""
        roles = await self._roles_for(caller).list_roles(caller.uid)
        return resolve_role(roles)
