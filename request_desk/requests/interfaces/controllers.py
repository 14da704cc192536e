"""
Requests Controllers (API Routes)
=================================

FastAPI routes for submitting, triaging and commenting on requests.

Controllers delegate to application services. Every route runs as the
authenticated caller; what a caller sees and may change is decided by the
policy set inside the repositories.
"""

import json
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from request_desk.accounts.domain import CallerContext, resolve_role
from request_desk.accounts.infrastructure.repositories import SQLAlchemyRoleRepository
from request_desk.accounts.interfaces.dependencies import get_caller
from request_desk.config import Role
from request_desk.infrastructure.database import get_change_feed, get_session, get_session_context
from request_desk.requests.application import (
    ClassificationResponse,
    ClassifyPayload,
    CommentPayload,
    CommentResponse,
    CommentService,
    CreateRequestPayload,
    LiveCollection,
    RequestResponse,
    RequestService,
    StatsResponse,
    UpdateRequestPayload,
    preview_classification,
)
from request_desk.requests.application.dto import CategoryStr, PriorityStr, StatusStr
from request_desk.requests.domain import RequestFilters
from request_desk.requests.infrastructure.repositories import (
    SQLAlchemyCommentRepository,
    SQLAlchemyRequestRepository,
)
from request_desk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/requests", tags=["Requests"])


# ========== Example payloads for Swagger ==========

CREATE_REQUEST_EXAMPLE = {
    "title": "Printer on floor 3 not working",
    "description": "The shared printer shows a paper jam error and nothing prints."
}

REQUEST_RESPONSE_EXAMPLE = {
    "id": "0b6f7a2e-5d1c-4e88-9a3f-6c2b1d7e9f10",
    "title": "Printer on floor 3 not working",
    "description": "The shared printer shows a paper jam error and nothing prints.",
    "category": "IT and Technical Support",
    "priority": "Critical",
    "status": "Received",
    "submitter_id": "6f1c2d9e-4b7a-4f43-9b0e-2a7d5c1e8f30",
    "submitter_name": "Amina Yusuf",
    "assigned_unit": "IT Division",
    "assigned_handler": "",
    "ai_response": (
        'Your request regarding "Printer on floor 3 not working" has been received and '
        "forwarded to the IT and Technical Support Division. Our team will review your "
        "request and contact you shortly."
    ),
    "created_at": "2026-03-02T09:15:00Z",
    "updated_at": "2026-03-02T09:15:00Z",
    "resolved_at": None,
    "deadline": None
}

UPDATE_REQUEST_EXAMPLE = {
    "status": "In Progress",
    "assigned_handler": "Daniel Okafor",
    "deadline": "2026-03-04T17:00:00Z"
}

STATS_RESPONSE_EXAMPLE = {
    "total": 42,
    "received": 12,
    "in_progress": 9,
    "resolved": 21,
    "critical": 4
}


# ========== Dependencies ==========

def get_request_service(
    db: AsyncSession = Depends(get_session),
    caller: CallerContext = Depends(get_caller)
) -> RequestService:
    return RequestService(SQLAlchemyRequestRepository(db, caller))


def get_comment_service(
    db: AsyncSession = Depends(get_session),
    caller: CallerContext = Depends(get_caller)
) -> CommentService:
    return CommentService(
        SQLAlchemyCommentRepository(db, caller),
        SQLAlchemyRequestRepository(db, caller)
    )


def _filters(
    q: Optional[str] = Query(None, description="Search title, description and submitter name"),
    category: Optional[CategoryStr] = Query(None),
    status_: Optional[StatusStr] = Query(None, alias="status"),
    priority: Optional[PriorityStr] = Query(None)
) -> RequestFilters:
    return RequestFilters(search=q or None, category=category, status=status_, priority=priority)


def _sse(event: str, data: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def _stream(request: Request, live: LiveCollection) -> StreamingResponse:
    async def events():
        try:
            async for snapshot in live.snapshots():
                if await request.is_disconnected():
                    break
                yield _sse("snapshot", snapshot)
        finally:
            live.close()

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
    )


async def _caller_role(caller: CallerContext) -> Role:
    async with get_session_context() as session:
        roles = await SQLAlchemyRoleRepository(session, caller).list_roles(caller.uid)
    return resolve_role(roles)


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=RequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a request",
    description="""
    File a new request as the authenticated caller.

    Category, priority, routing unit and the acknowledgment text are
    filled in by the keyword classifier. A supplied `category` or
    `priority` overrides the classifier.
    """,
    responses={
        201: {
            "description": "Request submitted",
            "content": {
                "application/json": {
                    "example": REQUEST_RESPONSE_EXAMPLE
                }
            }
        },
        401: {"description": "Not authenticated"}
    },
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": CREATE_REQUEST_EXAMPLE}}}
    }
)
async def submit_request(
    request: Request,
    payload: CreateRequestPayload,
    db: AsyncSession = Depends(get_session),
    caller: CallerContext = Depends(get_caller),
    service: RequestService = Depends(get_request_service)
):
    model = await service.submit(
        caller,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        priority=payload.priority,
    )
    await db.commit()

    logger.info(
        "Request stored",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "request_id": str(model.id)
        }
    )
    return RequestResponse.model_validate(model)


@router.get(
    "",
    response_model=List[RequestResponse],
    summary="List visible requests",
    description="""
    Submitters see their own requests; handlers see all requests.

    `q` is a case-insensitive substring search over title, description and
    submitter name. The other filters match exactly. Newest first.
    """
)
async def list_requests(
    filters: RequestFilters = Depends(_filters),
    service: RequestService = Depends(get_request_service)
):
    rows = await service.list(filters)
    return [RequestResponse.model_validate(row) for row in rows]


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Request counts",
    responses={
        200: {
            "description": "Counts over visible requests",
            "content": {
                "application/json": {
                    "example": STATS_RESPONSE_EXAMPLE
                }
            }
        }
    }
)
async def request_stats(service: RequestService = Depends(get_request_service)):
    stats = await service.stats()
    return StatsResponse.model_validate(stats)


@router.post(
    "/classify",
    response_model=ClassificationResponse,
    summary="Preview classification",
    description="Run the keyword classifier without storing anything."
)
async def classify_preview(
    payload: ClassifyPayload,
    caller: CallerContext = Depends(get_caller)
):
    result = preview_classification(
        payload.title, payload.description, payload.category, payload.priority
    )
    return ClassificationResponse(
        category=result.category.value,
        priority=result.priority.value,
        assigned_unit=result.assigned_unit,
        generated_response=result.generated_response,
    )


@router.get(
    "/live",
    summary="Live request list (Server-Sent Events)",
    description="""
    Streams a `snapshot` event with the full visible list on connect and
    again after every committed change that may affect it. Bursts of
    changes collapse into one snapshot.
    """,
    response_class=StreamingResponse
)
async def live_requests(
    request: Request,
    filters: RequestFilters = Depends(_filters),
    caller: CallerContext = Depends(get_caller)
):
    is_handler = await _caller_role(caller) == Role.HANDLER
    subscription = get_change_feed().subscribe(
        "requests",
        None if is_handler else (lambda event: event.row.get("submitter_id") == caller.uid)
    )

    async def fetch():
        async with get_session_context() as session:
            rows = await SQLAlchemyRequestRepository(session, caller).list(filters)
        return [RequestResponse.model_validate(row).model_dump(mode="json") for row in rows]

    return _stream(request, LiveCollection(subscription, fetch))


@router.get(
    "/{request_id}",
    response_model=RequestResponse,
    summary="Get a request",
    responses={404: {"description": "Request not found or not visible"}}
)
async def get_request(
    request_id: UUID,
    service: RequestService = Depends(get_request_service)
):
    model = await service.get(request_id)
    return RequestResponse.model_validate(model)


@router.patch(
    "/{request_id}",
    response_model=RequestResponse,
    summary="Triage a request",
    description="""
    Change status, priority, category, assigned unit, assigned handler or
    deadline. Handlers only.

    Only the supplied fields are written. Entering `Resolved` stamps
    `resolved_at`; leaving it clears `resolved_at`.
    """,
    responses={
        403: {"description": "Operation not permitted"},
        404: {"description": "Request not found or not visible"}
    },
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": UPDATE_REQUEST_EXAMPLE}}}
    }
)
async def update_request(
    request_id: UUID,
    payload: UpdateRequestPayload,
    db: AsyncSession = Depends(get_session),
    service: RequestService = Depends(get_request_service)
):
    model = await service.update(request_id, payload.changes())
    await db.commit()
    return RequestResponse.model_validate(model)


@router.delete(
    "/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a request",
    description="Handlers only. Comments on the request are deleted with it.",
    responses={
        403: {"description": "Operation not permitted"},
        404: {"description": "Request not found or not visible"}
    }
)
async def delete_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_session),
    service: RequestService = Depends(get_request_service)
):
    await service.delete(request_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{request_id}/comments",
    response_model=List[CommentResponse],
    summary="List comments",
    description="Comments on a visible request, oldest first."
)
async def list_comments(
    request_id: UUID,
    service: CommentService = Depends(get_comment_service)
):
    rows = await service.list(request_id)
    return [CommentResponse.model_validate(row) for row in rows]


@router.post(
    "/{request_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
    description="The submitter of the request and handlers may comment.",
    responses={
        403: {"description": "Operation not permitted"},
        404: {"description": "Request not found or not visible"}
    }
)
async def add_comment(
    request_id: UUID,
    payload: CommentPayload,
    db: AsyncSession = Depends(get_session),
    caller: CallerContext = Depends(get_caller),
    service: CommentService = Depends(get_comment_service)
):
    model = await service.add(caller, request_id, payload.comment)
    await db.commit()
    return CommentResponse.model_validate(model)


@router.get(
    "/{request_id}/comments/live",
    summary="Live comment thread (Server-Sent Events)",
    response_class=StreamingResponse
)
async def live_comments(
    request: Request,
    request_id: UUID,
    caller: CallerContext = Depends(get_caller),
    service: CommentService = Depends(get_comment_service)
):
    # Fails with 404 before the stream opens
    await service.list(request_id)

    subscription = get_change_feed().subscribe(
        "request_comments",
        lambda event: event.row.get("request_id") == request_id
    )

    async def fetch():
        async with get_session_context() as session:
            rows = await SQLAlchemyCommentRepository(session, caller).list_for_request(request_id)
        return [CommentResponse.model_validate(row).model_dump(mode="json") for row in rows]

    return _stream(request, LiveCollection(subscription, fetch))


# Export router
requests_router = router
