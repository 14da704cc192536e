"""
Requests Application DTOs
=========================

Data Transfer Objects for the requests API layer.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Any, Dict, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ========== Type Aliases for Literals ==========
CategoryStr = Literal[
    "IT and Technical Support",
    "Facilities and Maintenance",
    "Equipment and Furniture",
    "Safety and Fire Protection",
    "HR and Staff Matters",
    "Other",
]
PriorityStr = Literal["Critical", "High", "Medium", "Low"]
StatusStr = Literal["Received", "In Progress", "Resolved"]


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v.strip()


# ========== Request DTOs ==========

class ClassifyPayload(BaseModel):
    """Request model for a classification preview."""
    title: str = Field(default="", description="Request title")
    description: str = Field(default="", description="Request description")
    category: Optional[CategoryStr] = Field(None, description="Manual category override")
    priority: Optional[PriorityStr] = Field(None, description="Manual priority override")


class CreateRequestPayload(BaseModel):
    """Request model for submitting a request."""
    title: str = Field(..., min_length=1, description="Short summary")
    description: str = Field(..., min_length=1, description="Full description")
    category: Optional[CategoryStr] = Field(None, description="Manual category override")
    priority: Optional[PriorityStr] = Field(None, description="Manual priority override")

    @field_validator("title", "description")
    @classmethod
    def validate_text(cls, v: str) -> str:
        return _not_blank(v)


class UpdateRequestPayload(BaseModel):
    """
    Request model for handler triage.

    Only the fields present in the body are written. ``deadline`` may be
    cleared with null; the other fields may not.
    """
    model_config = ConfigDict(extra="forbid")

    status: Optional[StatusStr] = None
    priority: Optional[PriorityStr] = None
    category: Optional[CategoryStr] = None
    assigned_unit: Optional[str] = None
    assigned_handler: Optional[str] = None
    deadline: Optional[datetime] = None

    @model_validator(mode="after")
    def reject_null_columns(self) -> "UpdateRequestPayload":
        nulls = [
            name for name in self.model_fields_set
            if name != "deadline" and getattr(self, name) is None
        ]
        if nulls:
            raise ValueError(f"fields cannot be null: {', '.join(sorted(nulls))}")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CommentPayload(BaseModel):
    """Request model for adding a comment."""
    comment: str = Field(..., min_length=1, description="Comment text")

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v: str) -> str:
        return _not_blank(v)


# ========== Response DTOs ==========

class ClassificationResponse(BaseModel):
    """Classifier output."""
    category: CategoryStr
    priority: PriorityStr
    assigned_unit: str
    generated_response: str


class RequestResponse(BaseModel):
    """A stored request."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    category: str
    priority: str
    status: str
    submitter_id: UUID
    submitter_name: str
    assigned_unit: str
    assigned_handler: str
    ai_response: str
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    deadline: Optional[datetime] = None


class CommentResponse(BaseModel):
    """A stored comment."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    request_id: UUID
    user_id: UUID
    user_name: str
    comment: str
    created_at: datetime


class StatsResponse(BaseModel):
    """Counts over the requests visible to the caller."""
    model_config = ConfigDict(from_attributes=True)

    total: int
    received: int
    in_progress: int
    resolved: int
    critical: int
