"""
Accounts Domain Entities
========================

Identity records and role resolution.
"""

from dataclasses import dataclass
from typing import Iterable, Optional
from uuid import UUID

from request_desk.config import Role


@dataclass(frozen=True)
class IdentityUser:
    """A user as reported by the identity provider."""
    id: UUID
    email: str
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email


@dataclass(frozen=True)
class IdentitySession:
    """Credentials issued at sign-in (or sign-up, when no confirmation is required)."""
    access_token: str
    user: IdentityUser
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


@dataclass(frozen=True)
class CallerContext:
    """
    Who is making this call.

    Built once per HTTP call from a validated access token and handed to
    services and repositories explicitly. Roles are not carried here; the
    policy set reads them from the database on every statement.
    """
    uid: UUID
    email: str
    display_name: str
    access_token: Optional[str] = None

    @classmethod
    def from_identity(cls, user: IdentityUser, access_token: Optional[str] = None) -> "CallerContext":
        return cls(
            uid=user.id,
            email=user.email,
            display_name=user.display_name,
            access_token=access_token,
        )


def resolve_role(roles: Iterable[str]) -> Role:
    """Effective role from the caller's role rows; no rows means submitter."""
    return Role.HANDLER if Role.HANDLER.value in set(roles) else Role.SUBMITTER


def view_for(role: Role) -> str:
    """Name of the UI view a role is routed to."""
    return "handler" if role == Role.HANDLER else "submitter"
