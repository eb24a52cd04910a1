"""User ORM model: identity is issued elsewhere; the engine reads role and country."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vacations.common.audit import utcnow
from vacations.common.constants import UserRole
from vacations.database import Base

if TYPE_CHECKING:
    from vacations.leave.models import LeaveRequest


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[Optional[str]] = mapped_column(sa.String(255))
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        sa.Enum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.member,
    )
    country: Mapped[Optional[str]] = mapped_column(sa.String(2))
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow
    )

    # Relationships
    leave_requests: Mapped[list[LeaveRequest]] = relationship(
        back_populates="owner",
        foreign_keys="LeaveRequest.user_id",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown User"

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
