"""Notification endpoints: daily out-of-office report (cron)."""


import hmac
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.common.exceptions import AuthenticationError
from vacations.common.responses import Envelope, ok
from vacations.config import settings
from vacations.database import get_db
from vacations.notifications.schemas import DailyReportResult
from vacations.notifications.service import NotificationService

router = APIRouter(prefix="", tags=["notifications"])


def require_cron_secret(request: Request) -> None:
    """Accept only ``Authorization: Bearer <CRON_SECRET>``."""
    if not settings.CRON_SECRET:
        raise AuthenticationError("Cron secret is not configured.")
    auth_header = request.headers.get("Authorization", "")
    expected = f"Bearer {settings.CRON_SECRET}"
    if not hmac.compare_digest(auth_header.encode(), expected.encode()):
        raise AuthenticationError("Invalid cron credentials.")


# ── POST /daily-report ──────────────────────────────────────────────

@router.post(
    "/daily-report",
    response_model=Envelope[DailyReportResult],
    dependencies=[Depends(require_cron_secret)],
)
async def daily_report(
    on: Optional[date] = Query(None, description="Defaults to today"),
    force: bool = Query(False, description="Send even when nobody is out"),
    db: AsyncSession = Depends(get_db),
):
    """Publish today's out-of-office report to the notification sink."""
    return ok(
        await NotificationService.send_daily_report(db, on or date.today(), force=force)
    )
