"""
Core Module
============

Framework-agnostic pieces shared by both bounded contexts.
"""

from request_desk.core.exceptions import (
    ApplicationException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    AuthenticationException,
    PolicyViolationException,
    ExternalServiceException,
    IdentityProviderException,
)

__all__ = [
    "ApplicationException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "AuthenticationException",
    "PolicyViolationException",
    "ExternalServiceException",
    "IdentityProviderException",
]
