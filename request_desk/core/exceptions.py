"""
Core Exceptions
================

Error types raised by services, repositories and adapters.

Each one maps to a single HTTP status in
``request_desk.shared.api.middleware``; nothing below the interface layer
imports FastAPI.
"""

from typing import Optional


class ApplicationException(Exception):
    """Root of every error the request desk raises on purpose."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationException(ApplicationException):
    """Input the caller can fix: blank text, unknown vocabulary, empty patch."""


class ResourceNotFoundException(ApplicationException):
    """A request or comment thread that does not exist for this caller."""

    def __init__(self, resource_type: str, resource_id=None, details: Optional[dict] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        if resource_id is None:
            message = f"{resource_type} not found"
        else:
            message = f"{resource_type} '{resource_id}' not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Required settings are missing at startup."""


class AuthenticationException(ApplicationException):
    """Missing, expired or rejected credentials."""

    def __init__(self, message: str = "Not authenticated", details: Optional[dict] = None):
        super().__init__(message, details)


class PolicyViolationException(ApplicationException):
    """
    A write was refused by the row-level policy set.

    Clients only ever see "Operation not permitted"; ``table`` and
    ``operation`` go to the logs.
    """

    def __init__(self, table: str, operation: str):
        self.table = table
        self.operation = operation
        super().__init__("Operation not permitted")


class ExternalServiceException(ApplicationException):
    """An upstream dependency failed or was unreachable."""

    def __init__(self, service_name: str, message: str, details: Optional[dict] = None):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class IdentityProviderException(ExternalServiceException):
    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Identity Provider", message, details)
