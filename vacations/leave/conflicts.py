"""Conflict detector: team overlaps and public-holiday overlaps.

Both checks are pure reads. Their results are advisory: a conflicting but
otherwise valid submission still succeeds unless the blocking policy is on.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.common.constants import LeaveStatus
from vacations.holidays.service import HolidayService
from vacations.leave.models import LeaveRequest
from vacations.leave.schemas import ConflictReport, HolidayConflict, TeamConflict


class ConflictDetector:
    """Async overlap queries over approved requests and the holiday cache."""

    @staticmethod
    async def check_team_conflicts(
        db: AsyncSession,
        start: date,
        end: date,
        *,
        exclude_request_id: Optional[uuid.UUID] = None,
    ) -> list[TeamConflict]:
        """Approved requests overlapping ``[start, end]``, ordered by start date.

        Closed intervals: a request ending on *start* or beginning on *end*
        counts as an overlap.
        """
        query = (
            select(LeaveRequest)
            .where(
                LeaveRequest.status == LeaveStatus.approved,
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start,
            )
            .order_by(LeaveRequest.start_date, LeaveRequest.created_at)
        )
        if exclude_request_id is not None:
            query = query.where(LeaveRequest.id != exclude_request_id)

        result = await db.execute(query)
        return [
            TeamConflict(
                id=req.id,
                user_id=req.user_id,
                user_name=req.owner.display_name,
                start_date=req.start_date,
                end_date=req.end_date,
                leave_type=req.leave_type,
            )
            for req in result.scalars().all()
        ]

    @staticmethod
    async def check_holiday_conflicts(
        db: AsyncSession,
        country: Optional[str],
        start: date,
        end: date,
    ) -> list[HolidayConflict]:
        """Cached holidays of *country* inside ``[start, end]``; empty without a country."""
        if not country:
            return []
        holidays = await HolidayService.query(db, country, start=start, end=end)
        return [HolidayConflict.model_validate(h) for h in holidays]

    @staticmethod
    async def check(
        db: AsyncSession,
        country: Optional[str],
        start: date,
        end: date,
        *,
        exclude_request_id: Optional[uuid.UUID] = None,
    ) -> ConflictReport:
        team = await ConflictDetector.check_team_conflicts(
            db, start, end, exclude_request_id=exclude_request_id,
        )
        holidays = await ConflictDetector.check_holiday_conflicts(db, country, start, end)
        return ConflictReport(team=team, holidays=holidays)
