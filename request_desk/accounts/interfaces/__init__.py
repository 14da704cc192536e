"""
Accounts Interfaces Layer
=========================

Interface adapters (controllers) for the accounts module.

Contains:
- Controllers: FastAPI route handlers
- Dependencies: caller authentication
"""

from request_desk.accounts.interfaces.controllers import accounts_router
from request_desk.accounts.interfaces.dependencies import get_caller, get_identity_provider

__all__ = ["accounts_router", "get_caller", "get_identity_provider"]
