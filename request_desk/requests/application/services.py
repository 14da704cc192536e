"""
Requests Application Services
=============================

Application services for submitting, triaging and commenting on requests.

Orchestrates the classifier, domain entities and repositories. Every
repository is bound to one caller, so services never see rows that the
caller's policies hide.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import UUID

from request_desk.accounts.domain import CallerContext
from request_desk.core import ResourceNotFoundException, ValidationException
from request_desk.requests.domain import (
    TRIAGE_FIELDS,
    Classification,
    RequestComment,
    RequestFilters,
    RequestStats,
    ServiceRequest,
    apply_overrides,
    classify,
)
from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IRequestRepository(ABC):
    """Interface for request data access."""

    @abstractmethod
    async def create(self, request: ServiceRequest) -> Any:
        """Insert a new request."""

    @abstractmethod
    async def get_by_id(self, request_id: UUID) -> Optional[Any]:
        """Get a visible request by ID."""

    @abstractmethod
    async def list(self, filters: RequestFilters) -> List[Any]:
        """Visible requests, newest first."""

    @abstractmethod
    async def update(self, request_id: UUID, changes: Dict[str, Any]) -> Any:
        """Apply column changes to a request."""

    @abstractmethod
    async def delete(self, request_id: UUID) -> None:
        """Delete a request and its comments."""

    @abstractmethod
    async def stats(self) -> RequestStats:
        """Status counts over visible requests."""


class ICommentRepository(ABC):
    """Interface for comment data access. Comments are append-only."""

    @abstractmethod
    async def list_for_request(self, request_id: UUID) -> List[Any]:
        """Visible comments on a request, oldest first."""

    @abstractmethod
    async def create(self, comment: RequestComment) -> Any:
        """Insert a new comment."""


# ========== Application Services ==========

def preview_classification(
    title: str,
    description: str,
    category: Optional[str] = None,
    priority: Optional[str] = None
) -> Classification:
    """Classifier output with manual overrides applied."""
    return apply_overrides(classify(title, description), category=category, priority=priority)


class RequestService:
    """Service for the request lifecycle."""

    def __init__(self, requests: IRequestRepository):
        self._requests = requests

    async def submit(
        self,
        caller: CallerContext,
        title: str,
        description: str,
        category: Optional[str] = None,
        priority: Optional[str] = None
    ) -> Any:
        """
        File a new request.

        Category, priority, unit and canned response come from the
        classifier unless category or priority are supplied.

        Args:
            caller: Submitting user
            title: Request title
            description: Request body
            category: Optional manual category
            priority: Optional manual priority

        Returns:
            The stored request
        """
        classification = preview_classification(title, description, category, priority)

        request = ServiceRequest.submit(
            submitter_id=caller.uid,
            submitter_name=caller.display_name or caller.email,
            title=title,
            description=description,
            classification=classification,
        )
        model = await self._requests.create(request)

        logger.info(
            "Request submitted",
            extra={
                "request_id": str(model.id),
                "submitter_id": str(caller.uid),
                "category": model.category,
                "priority": model.priority,
                "overridden": category is not None or priority is not None
            }
        )
        return model

    async def list(self, filters: Optional[RequestFilters] = None) -> List[Any]:
        return await self._requests.list(filters or RequestFilters())

    async def get(self, request_id: UUID) -> Any:
        """
        Raises:
            ResourceNotFoundException: If the request does not exist or is not visible
        """
        model = await self._requests.get_by_id(request_id)
        if model is None:
            raise ResourceNotFoundException("Request", str(request_id))
        return model

    async def update(self, request_id: UUID, changes: Dict[str, Any]) -> Any:
        """
        Change triage fields of a request.

        Only the supplied columns are written; concurrent edits are
        last-write-wins per column set.

        Raises:
            ValidationException: If no changes are given or a non-triage field is
            ResourceNotFoundException: If the request is not visible
            PolicyViolationException: If the caller may not update it
        """
        if not changes:
            raise ValidationException("No changes supplied")

        unknown = sorted(set(changes) - set(TRIAGE_FIELDS))
        if unknown:
            raise ValidationException(
                "Only triage fields can be changed",
                details={"fields": unknown}
            )

        await self.get(request_id)
        model = await self._requests.update(request_id, changes)

        logger.info(
            "Request updated",
            extra={
                "request_id": str(request_id),
                "fields": sorted(changes),
                "status": model.status
            }
        )
        return model

    async def delete(self, request_id: UUID) -> None:
        await self.get(request_id)
        await self._requests.delete(request_id)

        logger.info("Request deleted", extra={"request_id": str(request_id)})

    async def stats(self) -> RequestStats:
        return await self._requests.stats()


class CommentService:
    """Service for comment threads."""

    def __init__(self, comments: ICommentRepository, requests: IRequestRepository):
        self._comments = comments
        self._requests = requests

    async def _require_request(self, request_id: UUID) -> None:
        if await self._requests.get_by_id(request_id) is None:
            raise ResourceNotFoundException("Request", str(request_id))

    async def list(self, request_id: UUID) -> List[Any]:
        await self._require_request(request_id)
        return await self._comments.list_for_request(request_id)

    async def add(self, caller: CallerContext, request_id: UUID, text: str) -> Any:
        """
        Append a comment to a request.

        Raises:
            ValidationException: If the comment is blank
            ResourceNotFoundException: If the request is not visible
            PolicyViolationException: If the caller may not comment on it
        """
        text = (text or "").strip()
        if not text:
            raise ValidationException("Comment must not be blank")

        await self._require_request(request_id)

        comment = RequestComment(
            id=None,
            request_id=request_id,
            user_id=caller.uid,
            user_name=caller.display_name or caller.email,
            comment=text,
        )
        model = await self._comments.create(comment)

        logger.info(
            "Comment added",
            extra={"request_id": str(request_id), "user_id": str(caller.uid)}
        )
        return model
