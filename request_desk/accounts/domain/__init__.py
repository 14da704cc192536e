"""
Accounts Domain Layer
=====================

Contains:
- CallerContext: the explicit per-call identity passed to services
- Identity records returned by the identity provider
- Role resolution
"""

from request_desk.accounts.domain.entities import (
    CallerContext,
    IdentityUser,
    IdentitySession,
    resolve_role,
    view_for,
)

__all__ = [
    "CallerContext",
    "IdentityUser",
    "IdentitySession",
    "resolve_role",
    "view_for",
]
