"""PTO balance aggregator.

Only ``annual`` leave debits the yearly allocation. Approved requests count
as used, pending ones as pending, rejected ones not at all. Days are
business days net of the owner's country holidays.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.common.constants import PTO_LEAVE_TYPE, LeaveStatus
from vacations.common.exceptions import NotFoundError
from vacations.config import settings
from vacations.holidays.service import HolidayService
from vacations.leave.business_days import count_business_days
from vacations.leave.models import LeaveRequest
from vacations.leave.schemas import PtoBalanceOut
from vacations.users.models import User


def remaining_days(total_allocation: int, used_days: int) -> int:
    """Never negative: overdrawn balances floor at zero."""
    return max(0, total_allocation - used_days)


class BalanceService:
    """Derived, never-persisted PTO balance snapshots."""

    @staticmethod
    async def compute_balance(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
        *,
        allocation: Optional[int] = None,
    ) -> PtoBalanceOut:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", str(user_id))

        total = settings.PTO_ANNUAL_ALLOCATION if allocation is None else allocation
        year_start, year_end = date(year, 1, 1), date(year, 12, 31)

        result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.leave_type == PTO_LEAVE_TYPE,
                LeaveRequest.status.in_([LeaveStatus.approved, LeaveStatus.pending]),
                LeaveRequest.start_date >= year_start,
                LeaveRequest.start_date <= year_end,
            )
        )
        requests = list(result.scalars().all())

        # A request starting in December may run into January.
        last_day = max((r.end_date for r in requests), default=year_end)
        holidays = await HolidayService.holiday_dates(
            db, user.country, year_start, max(last_day, year_end),
        )

        used = pending = 0
        approved_count = pending_count = 0
        for req in requests:
            days = count_business_days(req.start_date, req.end_date, holidays)
            if req.status == LeaveStatus.approved:
                used += days
                approved_count += 1
            else:
                pending += days
                pending_count += 1

        return PtoBalanceOut(
            user_id=user_id,
            year=year,
            total_allocation=total,
            used_days=used,
            pending_days=pending,
            remaining_days=remaining_days(total, used),
            approved_requests=approved_count,
            pending_requests=pending_count,
        )
