"""Enums and constants for Vacations: matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    admin = "admin"
    member = "member"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    annual = "annual"
    sick = "sick"
    personal = "personal"
    maternity = "maternity"
    paternity = "paternity"
    public = "public"
    other = "other"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class DecisionOutcome(str, enum.Enum):
    approved = "approved"
    rejected = "rejected"


# Display labels shown next to the raw codes in list views.
LEAVE_TYPE_LABELS: dict[LeaveType, str] = {
    LeaveType.annual: "Vacation",
    LeaveType.sick: "Sick Leave",
    LeaveType.personal: "Personal",
    LeaveType.maternity: "Maternity Leave",
    LeaveType.paternity: "Paternity Leave",
    LeaveType.public: "Public Holiday",
    LeaveType.other: "Other",
}

LEAVE_STATUS_LABELS: dict[LeaveStatus, str] = {
    LeaveStatus.pending: "Pending",
    LeaveStatus.approved: "Approved",
    LeaveStatus.rejected: "Rejected",
}

LEAVE_TYPE_EMOJI: dict[LeaveType, str] = {
    LeaveType.annual: ":palm_tree:",
    LeaveType.sick: ":face_with_thermometer:",
    LeaveType.personal: ":house:",
    LeaveType.maternity: ":baby:",
    LeaveType.paternity: ":man-baby:",
    LeaveType.public: ":calendar:",
    LeaveType.other: ":calendar:",
}

# Only this leave type debits the yearly PTO allocation.
PTO_LEAVE_TYPE = LeaveType.annual


# ── Events ──────────────────────────────────────────────────────────

class EventName(str, enum.Enum):
    requests_changed = "requests.changed"
    request_submitted = "request.submitted"
    request_approved = "request.approved"
    request_rejected = "request.rejected"
    request_cancelled = "request.cancelled"
    holidays_changed = "holidays.changed"
    out_of_office_report = "report.out_of_office"


# ── General ─────────────────────────────────────────────────────────

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
