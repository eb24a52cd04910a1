"""Public holiday cache ORM model."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from vacations.common.audit import utcnow
from vacations.database import Base


class PublicHoliday(Base):
    __tablename__ = "public_holidays"
    __table_args__ = (
        sa.UniqueConstraint("country", "date", name="uq_public_holiday_country_date"),
        sa.Index("ix_public_holidays_country_year", "country", "year"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    country: Mapped[str] = mapped_column(sa.String(2), nullable=False)
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    local_name: Mapped[Optional[str]] = mapped_column(sa.String(255))
    type: Mapped[str] = mapped_column(sa.String(50), nullable=False, default="Public")
    year: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow
    )

    def __repr__(self) -> str:
        return f"<PublicHoliday {self.country} {self.date} {self.name!r}>"
