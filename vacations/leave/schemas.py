"""Leave Pydantic v2 schemas: request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
  - *Brief              → compact embedded representations
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vacations.common.constants import DecisionOutcome, LeaveStatus, LeaveType


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class UserBrief(BaseModel):
    """Minimal user info embedded in leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    display_name: str
    email: str
    country: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Create
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for submitting a leave request."""

    start_date: date = Field(..., description="Leave start date (inclusive)")
    end_date: date = Field(..., description="Leave end date (inclusive)")
    leave_type: LeaveType
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def validate_dates(self) -> "LeaveRequestCreate":
        if self.start_date > self.end_date:
            raise ValueError("End date must be after or equal to start date.")
        return self


class DateRange(BaseModel):
    """Proposed range for a conflict check."""

    start_date: date
    end_date: date

    @model_validator(mode="after")
    def validate_dates(self) -> "DateRange":
        if self.start_date > self.end_date:
            raise ValueError("End date must be after or equal to start date.")
        return self


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    start_date: date
    end_date: date
    leave_type: LeaveType
    status: LeaveStatus
    notes: Optional[str] = None
    approved_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime

    # Enriched by service
    type_label: Optional[str] = None
    status_label: Optional[str] = None
    owner: Optional[UserBrief] = None


# ═════════════════════════════════════════════════════════════════════
# Conflicts
# ═════════════════════════════════════════════════════════════════════


class TeamConflict(BaseModel):
    """An approved request overlapping the proposed range."""

    id: uuid.UUID
    user_id: uuid.UUID
    user_name: str
    start_date: date
    end_date: date
    leave_type: LeaveType


class HolidayConflict(BaseModel):
    """A cached public holiday inside the proposed range."""

    model_config = ConfigDict(from_attributes=True)

    country: str
    date: date
    name: str
    local_name: Optional[str] = None
    type: str


class ConflictReport(BaseModel):
    """Advisory overlaps; never blocks a submission on its own."""

    team: list[TeamConflict] = []
    holidays: list[HolidayConflict] = []

    @property
    def has_conflict(self) -> bool:
        return bool(self.team or self.holidays)


class SubmitResult(BaseModel):
    """Created request plus the overlaps found at submission time."""

    request: LeaveRequestOut
    conflicts: ConflictReport
    business_days: int


# ═════════════════════════════════════════════════════════════════════
# Decision
# ═════════════════════════════════════════════════════════════════════


class LeaveDecisionRequest(BaseModel):
    """Payload for an admin decision on a leave request."""

    outcome: DecisionOutcome


# ═════════════════════════════════════════════════════════════════════
# PTO Balance
# ═════════════════════════════════════════════════════════════════════


class PtoBalanceOut(BaseModel):
    """Derived balance snapshot; never persisted."""

    user_id: uuid.UUID
    year: int
    total_allocation: int
    used_days: int
    pending_days: int
    remaining_days: int
    approved_requests: int = 0
    pending_requests: int = 0


# ═════════════════════════════════════════════════════════════════════
# Out of office
# ═════════════════════════════════════════════════════════════════════


class OutOfOfficeEntry(BaseModel):
    request_id: uuid.UUID
    user_id: uuid.UUID
    owner_name: str
    email: str
    start_date: date
    end_date: date
    leave_type: LeaveType
