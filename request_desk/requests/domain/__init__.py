"""
Requests Domain Layer
=====================

Contains:
- Entities: ServiceRequest, RequestComment, Classification, RequestStats
- Classifier: ordered keyword rules for category and priority

This layer is framework-agnostic and contains pure business logic.
"""

from request_desk.requests.domain.entities import (
    TRIAGE_FIELDS,
    Classification,
    ServiceRequest,
    RequestComment,
    RequestStats,
    RequestFilters,
    resolved_at_after,
)
from request_desk.requests.domain.classifier import classify, apply_overrides

__all__ = [
    "TRIAGE_FIELDS",
    "Classification",
    "ServiceRequest",
    "RequestComment",
    "RequestStats",
    "RequestFilters",
    "resolved_at_after",
    "classify",
    "apply_overrides",
]
