"""
Row-Level Policy Set
====================

Declarative per-table, per-operation authorization rules.

Policies follow PostgreSQL row-level security semantics:

- ``using`` is a row filter compiled into the WHERE clause of every
  SELECT, UPDATE and DELETE the repositories issue. Rows failing it are
  invisible.
- ``with_check`` is a predicate over the new row image of an INSERT or
  UPDATE, evaluated as SQL inside the caller's transaction before anything
  is flushed.
- Several policies for one (table, operation) are OR-ed together; a
  (table, operation) without any policy is denied.

Role membership and ownership are always EXISTS subqueries, so they are
read from the database in the same statement or transaction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy import ColumnElement, and_, exists, false, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from request_desk.accounts.domain import CallerContext
from request_desk.accounts.infrastructure.models import UserRoleModel
from request_desk.config import Role
from request_desk.core import PolicyViolationException
from request_desk.requests.infrastructure.models import RequestCommentModel, RequestModel
from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class Table(str, Enum):
    REQUESTS = "requests"
    COMMENTS = "request_comments"
    ROLES = "user_roles"


class Operation(str, Enum):
    INSERT = "insert"
    SELECT = "select"
    UPDATE = "update"
    DELETE = "delete"


UsingClause = Callable[[CallerContext], ColumnElement[bool]]
CheckClause = Callable[[CallerContext, Mapping[str, Any]], ColumnElement[bool]]


@dataclass(frozen=True)
class Policy:
    """One permissive rule for a (table, operation) pair."""
    name: str
    table: Table
    operation: Operation
    using: Optional[UsingClause] = None
    with_check: Optional[CheckClause] = None


# ========== Predicate building blocks ==========

def has_role(uid: UUID, role: Role) -> ColumnElement[bool]:
    """uid holds ``role``."""
    return (
        exists()
        .where(UserRoleModel.user_id == uid, UserRoleModel.role == role.value)
        .correlate_except(UserRoleModel)
    )


def owns_request(uid: UUID, request_id: Any) -> ColumnElement[bool]:
    """uid submitted the request; ``request_id`` may be a column or a value."""
    return (
        exists()
        .where(RequestModel.id == request_id, RequestModel.submitter_id == uid)
        .correlate_except(RequestModel)
    )


def is_caller(value: Any, caller: CallerContext) -> ColumnElement[bool]:
    """A new-row value equals the caller's identity."""
    return true() if value == caller.uid else false()


# ========== Policy set ==========

class PolicySet:
    """Indexed collection of policies."""

    def __init__(self, policies: Iterable[Policy]):
        self._policies: Dict[Tuple[Table, Operation], List[Policy]] = {}
        for policy in policies:
            self._policies.setdefault((policy.table, policy.operation), []).append(policy)

    def policies_for(self, table: Table, operation: Operation) -> List[Policy]:
        return list(self._policies.get((table, operation), []))

    def using(self, table: Table, operation: Operation, caller: CallerContext) -> ColumnElement[bool]:
        """Row filter for a SELECT, UPDATE or DELETE."""
        clauses = [p.using(caller) for p in self.policies_for(table, operation) if p.using is not None]
        return or_(*clauses) if clauses else false()

    def with_check(
        self,
        table: Table,
        operation: Operation,
        caller: CallerContext,
        row: Mapping[str, Any],
    ) -> ColumnElement[bool]:
        """Predicate over the new row image of an INSERT or UPDATE."""
        clauses = [
            p.with_check(caller, row)
            for p in self.policies_for(table, operation)
            if p.with_check is not None
        ]
        return or_(*clauses) if clauses else false()

    async def enforce_check(
        self,
        session: AsyncSession,
        table: Table,
        operation: Operation,
        caller: CallerContext,
        row: Mapping[str, Any],
    ) -> None:
        """
        Evaluate WITH CHECK in the caller's transaction.

        Raises:
            PolicyViolationException: If no policy admits the row
        """
        predicate = self.with_check(table, operation, caller, row)
        allowed = (await session.execute(select(predicate))).scalar()
        if not allowed:
            self.reject(table, operation, caller)

    def reject(self, table: Table, operation: Operation, caller: CallerContext) -> None:
        logger.warning(
            "Policy check failed",
            extra={"table": table.value, "operation": operation.value, "caller": str(caller.uid)}
        )
        raise PolicyViolationException(table.value, operation.value)


DEFAULT_POLICIES = PolicySet([
    # requests
    Policy(
        name="Users can create requests",
        table=Table.REQUESTS,
        operation=Operation.INSERT,
        with_check=lambda caller, row: is_caller(row.get("submitter_id"), caller),
    ),
    Policy(
        name="Submitters can view own requests",
        table=Table.REQUESTS,
        operation=Operation.SELECT,
        using=lambda caller: RequestModel.submitter_id == caller.uid,
    ),
    Policy(
        name="Handlers can view all requests",
        table=Table.REQUESTS,
        operation=Operation.SELECT,
        using=lambda caller: has_role(caller.uid, Role.HANDLER),
    ),
    Policy(
        name="Handlers can update requests",
        table=Table.REQUESTS,
        operation=Operation.UPDATE,
        using=lambda caller: has_role(caller.uid, Role.HANDLER),
        with_check=lambda caller, row: has_role(caller.uid, Role.HANDLER),
    ),
    Policy(
        name="Handlers can delete requests",
        table=Table.REQUESTS,
        operation=Operation.DELETE,
        using=lambda caller: has_role(caller.uid, Role.HANDLER),
    ),
    # request_comments
    Policy(
        name="Users can create comments on accessible requests",
        table=Table.COMMENTS,
        operation=Operation.INSERT,
        with_check=lambda caller, row: and_(
            is_caller(row.get("user_id"), caller),
            or_(
                owns_request(caller.uid, row.get("request_id")),
                has_role(caller.uid, Role.HANDLER),
            ),
        ),
    ),
    Policy(
        name="Users can view comments on accessible requests",
        table=Table.COMMENTS,
        operation=Operation.SELECT,
        using=lambda caller: or_(
            owns_request(caller.uid, RequestCommentModel.request_id),
            has_role(caller.uid, Role.HANDLER),
        ),
    ),
    # user_roles: no update or delete policy, so grants cannot be changed here
    Policy(
        name="Users can insert own role",
        table=Table.ROLES,
        operation=Operation.INSERT,
        with_check=lambda caller, row: is_caller(row.get("user_id"), caller),
    ),
    Policy(
        name="Users can view own roles",
        table=Table.ROLES,
        operation=Operation.SELECT,
        using=lambda caller: UserRoleModel.user_id == caller.uid,
    ),
])
