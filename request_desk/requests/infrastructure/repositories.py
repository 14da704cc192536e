"""
Requests Infrastructure Repositories
====================================

SQLAlchemy implementations of the request and comment repositories.

Each repository is bound to one caller and AND-s that caller's policy
predicates into every statement it issues.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import func, inspect, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from request_desk.accounts.domain import CallerContext
from request_desk.requests.application import ICommentRepository, IRequestRepository
from request_desk.requests.domain import RequestComment, RequestFilters, RequestStats, ServiceRequest


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _row_of(model: Any) -> Dict[str, Any]:
    return {attr.key: getattr(model, attr.key) for attr in inspect(model).mapper.column_attrs}


class SQLAlchemyRequestRepository(IRequestRepository):
    """SQLAlchemy implementation for requests."""

    def __init__(self, session: AsyncSession, caller: CallerContext, policies=None):
        from request_desk.infrastructure.policies import DEFAULT_POLICIES

        self._session = session
        self._caller = caller
        self._policies = policies or DEFAULT_POLICIES

    def _allowed(self, operation):
        from request_desk.infrastructure.policies import Table

        return self._policies.using(Table.REQUESTS, operation, self._caller)

    async def _select_for(self, request_id: UUID, operation, lock: bool = False):
        from request_desk.requests.infrastructure.models import RequestModel

        stmt = select(RequestModel).where(RequestModel.id == request_id, self._allowed(operation))
        if lock:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, request: ServiceRequest) -> Any:
        """Insert a request; the caller must be its submitter."""
        from request_desk.infrastructure.policies import Operation, Table
        from request_desk.requests.infrastructure.models import RequestModel

        row = request.to_row()
        await self._policies.enforce_check(
            self._session, Table.REQUESTS, Operation.INSERT, self._caller, row
        )

        model = RequestModel(id=uuid4(), **row)
        self._session.add(model)
        await self._session.flush()

        return model

    async def get_by_id(self, request_id: UUID) -> Optional[Any]:
        from request_desk.infrastructure.policies import Operation

        return await self._select_for(request_id, Operation.SELECT)

    async def list(self, filters: RequestFilters) -> List[Any]:
        """Visible requests matching the filters, newest first."""
        from request_desk.infrastructure.policies import Operation
        from request_desk.requests.infrastructure.models import RequestModel

        stmt = select(RequestModel).where(self._allowed(Operation.SELECT))

        if filters.search:
            pattern = _like_pattern(filters.search)
            stmt = stmt.where(or_(
                RequestModel.title.ilike(pattern, escape="\\"),
                RequestModel.description.ilike(pattern, escape="\\"),
                RequestModel.submitter_name.ilike(pattern, escape="\\"),
            ))
        if filters.category:
            stmt = stmt.where(RequestModel.category == filters.category)
        if filters.status:
            stmt = stmt.where(RequestModel.status == filters.status)
        if filters.priority:
            stmt = stmt.where(RequestModel.priority == filters.priority)

        stmt = stmt.order_by(RequestModel.created_at.desc())
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, request_id: UUID, changes: Dict[str, Any]) -> Any:
        """
        Write the given columns.

        The pre-image must pass the UPDATE row filter and the post-image
        the UPDATE check; timestamps are maintained by the model hooks.
        """
        from request_desk.infrastructure.policies import Operation, Table

        model = await self._select_for(request_id, Operation.UPDATE, lock=True)
        if model is None:
            self._policies.reject(Table.REQUESTS, Operation.UPDATE, self._caller)

        for key, value in changes.items():
            setattr(model, key, value)

        await self._policies.enforce_check(
            self._session, Table.REQUESTS, Operation.UPDATE, self._caller, _row_of(model)
        )
        await self._session.flush()

        return model

    async def delete(self, request_id: UUID) -> None:
        from request_desk.infrastructure.policies import Operation, Table

        model = await self._select_for(request_id, Operation.DELETE)
        if model is None:
            self._policies.reject(Table.REQUESTS, Operation.DELETE, self._caller)

        await self._session.delete(model)
        await self._session.flush()

    async def stats(self) -> RequestStats:
        from request_desk.infrastructure.policies import Operation
        from request_desk.requests.infrastructure.models import RequestModel

        stmt = (
            select(RequestModel.status, RequestModel.priority, func.count())
            .where(self._allowed(Operation.SELECT))
            .group_by(RequestModel.status, RequestModel.priority)
        )
        result = await self._session.execute(stmt)
        return RequestStats.from_counts(result.all())


class SQLAlchemyCommentRepository(ICommentRepository):
    """SQLAlchemy implementation for comments."""

    def __init__(self, session: AsyncSession, caller: CallerContext, policies=None):
        from request_desk.infrastructure.policies import DEFAULT_POLICIES

        self._session = session
        self._caller = caller
        self._policies = policies or DEFAULT_POLICIES

    async def list_for_request(self, request_id: UUID) -> List[Any]:
        from request_desk.infrastructure.policies import Operation, Table
        from request_desk.requests.infrastructure.models import RequestCommentModel

        stmt = (
            select(RequestCommentModel)
            .where(
                RequestCommentModel.request_id == request_id,
                self._policies.using(Table.COMMENTS, Operation.SELECT, self._caller),
            )
            .order_by(RequestCommentModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, comment: RequestComment) -> Any:
        from request_desk.infrastructure.policies import Operation, Table
        from request_desk.requests.infrastructure.models import RequestCommentModel

        row = {
            "request_id": comment.request_id,
            "user_id": comment.user_id,
            "user_name": comment.user_name,
            "comment": comment.comment,
        }
        await self._policies.enforce_check(
            self._session, Table.COMMENTS, Operation.INSERT, self._caller, row
        )

        model = RequestCommentModel(id=uuid4(), **row)
        self._session.add(model)
        await self._session.flush()

        return model
