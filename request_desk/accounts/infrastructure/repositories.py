"""
Accounts Infrastructure Repositories
====================================

SQLAlchemy implementation of the role repository.

Every statement carries the caller's policy predicates.
"""

from typing import Any, List
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from request_desk.accounts.application import IRoleRepository
from request_desk.accounts.domain import CallerContext
from request_desk.config import Role
from request_desk.core import ValidationException


class SQLAlchemyRoleRepository(IRoleRepository):
    """SQLAlchemy implementation for role grants."""

    def __init__(self, session: AsyncSession, caller: CallerContext, policies=None):
        from request_desk.infrastructure.policies import DEFAULT_POLICIES

        self._session = session
        self._caller = caller
        self._policies = policies or DEFAULT_POLICIES

    async def list_roles(self, user_id: UUID) -> List[str]:
        """Role names held by a user, as visible to the caller."""
        from request_desk.accounts.infrastructure.models import UserRoleModel
        from request_desk.infrastructure.policies import Operation, Table

        stmt = select(UserRoleModel.role).where(
            UserRoleModel.user_id == user_id,
            self._policies.using(Table.ROLES, Operation.SELECT, self._caller),
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, user_id: UUID, role: Role) -> Any:
        """Grant a role; the caller may only grant to themselves."""
        from request_desk.accounts.infrastructure.models import UserRoleModel
        from request_desk.infrastructure.policies import Operation, Table

        row = {"user_id": user_id, "role": role.value}
        await self._policies.enforce_check(
            self._session, Table.ROLES, Operation.INSERT, self._caller, row
        )

        model = UserRoleModel(id=uuid4(), **row)
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError:
            raise ValidationException(
                "Role already granted",
                details={"user_id": str(user_id), "role": role.value}
            )

        return model
