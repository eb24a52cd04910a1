"""Leave module: request lifecycle, conflicts, business days and PTO balance."""

from vacations.leave.models import LeaveRequest

__all__ = ["LeaveRequest"]
