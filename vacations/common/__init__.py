"""Common module: shared utilities for Vacations."""

from vacations.common.audit import AuditTrail, create_audit_entry
from vacations.common.constants import (
    DEFAULT_PAGE_SIZE,
    LEAVE_STATUS_LABELS,
    LEAVE_TYPE_LABELS,
    MAX_PAGE_SIZE,
    DecisionOutcome,
    EventName,
    LeaveStatus,
    LeaveType,
    UserRole,
)
from vacations.common.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    SchedulingConflictError,
    UpstreamUnavailableError,
    ValidationError,
    register_exception_handlers,
)
from vacations.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)
from vacations.common.responses import Envelope, ok

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "DecisionOutcome",
    "EventName",
    "LeaveStatus",
    "LeaveType",
    "UserRole",
    "LEAVE_STATUS_LABELS",
    "LEAVE_TYPE_LABELS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ForbiddenError",
    "InvalidStateError",
    "NotFoundError",
    "SchedulingConflictError",
    "UpstreamUnavailableError",
    "ValidationError",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
    # Responses
    "Envelope",
    "ok",
]
