"""
Shared fixtures: a throwaway SQLite database, an in-memory identity
provider and an HTTP client bound to the application.
"""

import secrets
from dataclasses import dataclass
from typing import Dict, Tuple
from uuid import uuid4

import httpx
import pytest

from request_desk.accounts.application import IIdentityProvider
from request_desk.accounts.domain import CallerContext, IdentitySession, IdentityUser
from request_desk.accounts.infrastructure.repositories import SQLAlchemyRoleRepository
from request_desk.accounts.interfaces.dependencies import get_identity_provider
from request_desk.config import Role
from request_desk.core import AuthenticationException, ValidationException
from request_desk.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from request_desk.main import app
from request_desk.shared.infrastructure.change_feed import ChangeFeed


# ---------------------------------------------------------------------------
# Identity provider double
# ---------------------------------------------------------------------------

class FakeIdentityProvider(IIdentityProvider):
    """Keeps users and tokens in memory."""

    def __init__(self):
        self._users: Dict[str, Tuple[str, IdentityUser]] = {}
        self._tokens: Dict[str, IdentityUser] = {}
        self.revoked = []

    def issue_token(self, user: IdentityUser) -> str:
        token = secrets.token_hex(16)
        self._tokens[token] = user
        return token

    async def sign_up(self, email: str, password: str, name: str) -> IdentityUser:
        if email in self._users:
            raise ValidationException("User already registered")
        user = IdentityUser(id=uuid4(), email=email, name=name)
        self._users[email] = (password, user)
        return user

    async def sign_in(self, email: str, password: str) -> IdentitySession:
        stored = self._users.get(email)
        if stored is None or stored[0] != password:
            raise AuthenticationException("Invalid login credentials")
        user = stored[1]
        return IdentitySession(access_token=self.issue_token(user), user=user, expires_in=3600)

    async def get_user(self, access_token: str) -> IdentityUser:
        user = self._tokens.get(access_token)
        if user is None:
            raise AuthenticationException("Invalid or expired access token")
        return user

    async def sign_out(self, access_token: str) -> None:
        self._tokens.pop(access_token, None)
        self.revoked.append(access_token)


@dataclass
class Account:
    user: IdentityUser
    token: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    @property
    def caller(self) -> CallerContext:
        return CallerContext.from_identity(self.user, self.token)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_caller(name: str = "amina") -> CallerContext:
    return CallerContext(uid=uuid4(), email=f"{name}@example.org", display_name=name.title())


async def grant_role(caller: CallerContext, role: Role) -> None:
    """Record a role grant the way a user does for themselves."""
    async with get_session_context() as session:
        await SQLAlchemyRoleRepository(session, caller).create(caller.uid, role)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def change_feed(tmp_path):
    feed = ChangeFeed()
    init_database(f"sqlite+aiosqlite:///{tmp_path / 'requests.db'}", change_feed=feed)
    await create_tables()
    yield feed
    await close_database()


@pytest.fixture
def identity():
    return FakeIdentityProvider()


@pytest.fixture
async def client(change_feed, identity):
    app.dependency_overrides[get_identity_provider] = lambda: identity
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def make_account(identity, change_feed):
    async def _make(name: str, role: Role = Role.SUBMITTER) -> Account:
        user = await identity.sign_up(f"{name}@example.org", "secret123", name.title())
        account = Account(user=user, token=identity.issue_token(user))
        await grant_role(account.caller, role)
        return account
    return _make


@pytest.fixture
async def submitter(make_account) -> Account:
    return await make_account("amina")


@pytest.fixture
async def other_submitter(make_account) -> Account:
    return await make_account("bruno")


@pytest.fixture
async def handler(make_account) -> Account:
    return await make_account("daniel", Role.HANDLER)
