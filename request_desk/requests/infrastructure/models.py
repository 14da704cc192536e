"""
Requests Infrastructure Models
==============================

SQLAlchemy ORM models for requests and their comments, plus the
storage-layer hooks that keep the derived timestamps consistent.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, event, inspect
from sqlalchemy.orm import Mapped, mapped_column, relationship

from request_desk.config import Priority, RequestStatus
from request_desk.infrastructure.database import Base
from request_desk.requests.domain import resolved_at_after


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestModel(Base):
    """
    Database model for ServiceRequest entity.

    Maps to the 'requests' table.
    """
    __tablename__ = "requests"
    __feed_columns__ = ("id", "submitter_id")

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Content, owned by the submitter
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Triage fields
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default=Priority.MEDIUM.value)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=RequestStatus.RECEIVED.value)

    # Submitter
    submitter_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    submitter_name: Mapped[str] = mapped_column(Text, nullable=False)

    # Routing
    assigned_unit: Mapped[str] = mapped_column(Text, nullable=False, default="")
    assigned_handler: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ai_response: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    comments: Mapped[List["RequestCommentModel"]] = relationship(
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="RequestCommentModel.created_at",
    )

    __table_args__ = (
        Index("idx_requests_submitter", "submitter_id"),
        Index("idx_requests_status", "status"),
        Index("idx_requests_category", "category"),
        Index("idx_requests_priority", "priority"),
        Index("idx_requests_created", "created_at"),
    )


class RequestCommentModel(Base):
    """
    Database model for RequestComment entity.

    Maps to the 'request_comments' table. Rows are never updated.
    """
    __tablename__ = "request_comments"
    __feed_columns__ = ("id", "request_id")

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    request_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    user_name: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    request: Mapped[RequestModel] = relationship(back_populates="comments")


# ========== Storage-layer hooks ==========

@event.listens_for(RequestModel, "before_insert")
def _stamp_resolved_on_insert(mapper, connection, target: RequestModel) -> None:
    target.resolved_at = resolved_at_after(target.status, None, target.resolved_at)


@event.listens_for(RequestModel, "before_update")
def _stamp_timestamps_on_update(mapper, connection, target: RequestModel) -> None:
    now = _utcnow()
    target.updated_at = now

    history = inspect(target).attrs.status.history
    old_status = history.deleted[0] if history.deleted else target.status
    target.resolved_at = resolved_at_after(target.status, old_status, target.resolved_at, now)
