"""
Request Domain Entities
=======================

Pure Python business objects for request tracking.

Contains no infrastructure concerns; the ORM models in the infrastructure
layer map onto these.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple
from uuid import UUID

from request_desk.config import Category, Priority, RequestStatus

# Columns a handler may change after submission
TRIAGE_FIELDS = ("status", "priority", "category", "assigned_unit", "assigned_handler", "deadline")


@dataclass(frozen=True)
class Classification:
    """Classifier output used to default-fill a new request."""
    category: Category
    priority: Priority
    assigned_unit: str
    generated_response: str


def resolved_at_after(
    new_status: str,
    old_status: Optional[str],
    current_resolved_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Value ``resolved_at`` must take after a status write.

    Entering Resolved stamps the time, staying Resolved keeps the existing
    stamp, and any other status clears it.
    """
    if new_status != RequestStatus.RESOLVED.value:
        return None
    if old_status != RequestStatus.RESOLVED.value or current_resolved_at is None:
        return now or datetime.now(timezone.utc)
    return current_resolved_at


@dataclass
class ServiceRequest:
    """
    A request filed by a submitter.

    ``resolved_at`` is set exactly when ``status`` is Resolved.
    """
    id: Optional[UUID]
    title: str
    description: str
    category: str
    priority: str
    status: str
    submitter_id: UUID
    submitter_name: str
    assigned_unit: str = ""
    assigned_handler: str = ""
    ai_response: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    deadline: Optional[datetime] = None

    @classmethod
    def submit(
        cls,
        submitter_id: UUID,
        submitter_name: str,
        title: str,
        description: str,
        classification: Classification,
    ) -> "ServiceRequest":
        """Build a new request in the Received state from classifier output."""
        return cls(
            id=None,
            title=title,
            description=description,
            category=classification.category.value,
            priority=classification.priority.value,
            status=RequestStatus.RECEIVED.value,
            submitter_id=submitter_id,
            submitter_name=submitter_name,
            assigned_unit=classification.assigned_unit,
            ai_response=classification.generated_response,
        )

    def to_row(self) -> Dict[str, Any]:
        """Column values for an insert, without server-assigned fields."""
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "submitter_id": self.submitter_id,
            "submitter_name": self.submitter_name,
            "assigned_unit": self.assigned_unit,
            "assigned_handler": self.assigned_handler,
            "ai_response": self.ai_response,
            "deadline": self.deadline,
        }


@dataclass
class RequestComment:
    """Append-only note on a request."""
    id: Optional[UUID]
    request_id: UUID
    user_id: UUID
    user_name: str
    comment: str
    created_at: Optional[datetime] = None


@dataclass
class RequestStats:
    """Status counts over the requests a caller can see."""
    total: int = 0
    received: int = 0
    in_progress: int = 0
    resolved: int = 0
    critical: int = 0

    @classmethod
    def from_counts(cls, counts: Iterable[Tuple[str, str, int]]) -> "RequestStats":
        """Fold (status, priority, count) groups into totals."""
        stats = cls()
        for status, priority, count in counts:
            stats.total += count
            if status == RequestStatus.RECEIVED.value:
                stats.received += count
            elif status == RequestStatus.IN_PROGRESS.value:
                stats.in_progress += count
            elif status == RequestStatus.RESOLVED.value:
                stats.resolved += count
            if priority == Priority.CRITICAL.value:
                stats.critical += count
        return stats


@dataclass
class RequestFilters:
    """Handler-view filters; empty values are ignored."""
    search: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
