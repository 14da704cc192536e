"""
Requests Application Layer
==========================

Application layer for the requests module.

Contains:
- Services: Submission, triage, comments and statistics
- DTOs: Data transfer objects for API serialization
- Live: Change-driven refetching of collections
"""

from request_desk.requests.application.dto import (
    ClassifyPayload,
    CreateRequestPayload,
    UpdateRequestPayload,
    CommentPayload,
    ClassificationResponse,
    RequestResponse,
    CommentResponse,
    StatsResponse
)
from request_desk.requests.application.services import (
    RequestService,
    CommentService,
    IRequestRepository,
    ICommentRepository,
    preview_classification
)
from request_desk.requests.application.live import LiveCollection

__all__ = [
    # DTOs
    "ClassifyPayload",
    "CreateRequestPayload",
    "UpdateRequestPayload",
    "CommentPayload",
    "ClassificationResponse",
    "RequestResponse",
    "CommentResponse",
    "StatsResponse",
    # Services
    "RequestService",
    "CommentService",
    "preview_classification",
    "LiveCollection",
    # Repository Interfaces
    "IRequestRepository",
    "ICommentRepository",
]
