"""
Accounts Infrastructure Models
==============================

SQLAlchemy ORM model for role assignments.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from request_desk.infrastructure.database import Base
from request_desk.config import ROLES


class UserRoleModel(Base):
    """
    Database model for a role grant.

    Maps to the 'user_roles' table. One row per (user_id, role).
    """
    __tablename__ = "user_roles"
    __feed_columns__ = ("id", "user_id", "role")

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Identity provider user id
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)

    role: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        CheckConstraint(
            "role IN ({})".format(", ".join(f"'{r}'" for r in ROLES)),
            name="ck_user_roles_role"
        ),
    )
