"""Daily out-of-office report."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from vacations.common.constants import EventName
from vacations.leave.service import LeaveService
from vacations.notifications.events import event_bus
from vacations.notifications.schemas import DailyReportResult

logger = logging.getLogger(__name__)


class NotificationService:

    @staticmethod
    async def send_daily_report(
        db: AsyncSession,
        today: date,
        *,
        force: bool = False,
    ) -> DailyReportResult:
        """Publish the out-of-office report for *today*.

        Skipped when nobody is out unless *force* is set, in which case the
        "everyone is present" variant goes out.
        """
        entries = await LeaveService.out_of_office(db, today)
        if not entries and not force:
            logger.info("No one is out of office on %s, skipping daily report", today)
            return DailyReportResult(
                date=today,
                out_of_office=0,
                published=False,
                message="No one out of office - daily report skipped",
            )

        event_bus.publish(
            EventName.out_of_office_report,
            {
                "date": today.isoformat(),
                "entries": [e.model_dump(mode="json") for e in entries],
            },
        )
        logger.info("Daily report published for %s (%d out)", today, len(entries))
        return DailyReportResult(
            date=today,
            out_of_office=len(entries),
            published=True,
            message="Daily report processed successfully",
        )
