"""
Identity Provider Adapter
=========================

Client for a Supabase-compatible GoTrue authentication API.

Endpoints used:
- POST /auth/v1/signup
- POST /auth/v1/token?grant_type=password
- GET  /auth/v1/user
- POST /auth/v1/logout
"""

from typing import Any, Dict, Optional
from uuid import UUID

import httpx

from request_desk.accounts.application import IIdentityProvider
from request_desk.accounts.domain import IdentitySession, IdentityUser
from request_desk.core import (
    AuthenticationException,
    IdentityProviderException,
    ValidationException,
)
from request_desk.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if not isinstance(body, dict):
        return str(body)
    return (
        body.get("error_description")
        or body.get("msg")
        or body.get("message")
        or body.get("error")
        or f"HTTP {response.status_code}"
    )


def _parse_user(data: Dict[str, Any]) -> IdentityUser:
    metadata = data.get("user_metadata") or {}
    try:
        return IdentityUser(
            id=UUID(str(data["id"])),
            email=data.get("email") or "",
            name=metadata.get("name") or None,
        )
    except (KeyError, ValueError) as e:
        raise IdentityProviderException(f"Malformed user payload: {e}")


class GoTrueIdentityProvider(IIdentityProvider):
    """
    Identity provider backed by a GoTrue HTTP API.

    The underlying httpx client is created lazily and reused; call
    ``close()`` on shutdown.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"apikey": self._api_key},
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _send(
        self,
        method: str,
        path: str,
        operation: str,
        access_token: Optional[str] = None,
        **kwargs: Any
    ) -> httpx.Response:
        headers = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        client = await self._get_client()
        try:
            with log_latency(logger, f"identity.{operation}"):
                return await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(
                "Identity provider unreachable",
                extra={"operation": operation, "error": str(e)}
            )
            raise IdentityProviderException(f"{operation} failed: {e}")

    def _raise_for_server_error(self, response: httpx.Response, operation: str) -> None:
        if response.status_code >= 500 or response.status_code == 429:
            logger.error(
                "Identity provider error",
                extra={"operation": operation, "status_code": response.status_code}
            )
            raise IdentityProviderException(
                f"{operation} failed: {_error_message(response)}",
                details={"status_code": response.status_code}
            )

    async def sign_up(self, email: str, password: str, name: str) -> IdentityUser:
        response = await self._send(
            "POST",
            "/auth/v1/signup",
            "sign_up",
            json={"email": email, "password": password, "data": {"name": name}},
        )
        self._raise_for_server_error(response, "sign_up")
        if response.status_code >= 400:
            raise ValidationException(_error_message(response))

        data = response.json()
        # Returns a session when no confirmation is required, a bare user otherwise
        return _parse_user(data.get("user") or data)

    async def sign_in(self, email: str, password: str) -> IdentitySession:
        response = await self._send(
            "POST",
            "/auth/v1/token",
            "sign_in",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        self._raise_for_server_error(response, "sign_in")
        if response.status_code >= 400:
            raise AuthenticationException(_error_message(response))

        data = response.json()
        if not data.get("access_token"):
            raise IdentityProviderException("Sign-in response carried no access token")

        return IdentitySession(
            access_token=data["access_token"],
            user=_parse_user(data.get("user") or {}),
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
        )

    async def get_user(self, access_token: str) -> IdentityUser:
        response = await self._send("GET", "/auth/v1/user", "get_user", access_token=access_token)
        self._raise_for_server_error(response, "get_user")
        if response.status_code >= 400:
            raise AuthenticationException("Invalid or expired access token")
        return _parse_user(response.json())

    async def sign_out(self, access_token: str) -> None:
        response = await self._send("POST", "/auth/v1/logout", "sign_out", access_token=access_token)
        self._raise_for_server_error(response, "sign_out")
        if response.status_code >= 400:
            raise AuthenticationException("Invalid or expired access token")
