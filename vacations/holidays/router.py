"""Holiday calendar endpoints: reads for everyone, cache mutation for admins."""


from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.auth.dependencies import get_current_user, require_admin
from vacations.common.exceptions import ValidationError
from vacations.common.rate_limit import limiter
from vacations.common.responses import Envelope, ok
from vacations.database import get_db
from vacations.holidays.provider import HolidayProvider, get_holiday_provider
from vacations.holidays.schemas import (
    HolidayIngestRequest,
    HolidaySyncRequest,
    IngestResult,
    PublicHolidayOut,
    SyncReport,
)
from vacations.holidays.service import HolidayService
from vacations.users.models import User

router = APIRouter(prefix="", tags=["holidays"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=Envelope[list[PublicHolidayOut]])
async def list_holidays(
    country: Optional[str] = Query(None, min_length=2, max_length=2),
    year: Optional[int] = Query(None, ge=1900, le=2999),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cached holidays for one country (defaults to the caller's), ordered by date."""
    country = country or user.country
    if not country:
        raise ValidationError({"country": ["No country given and none set on your profile."]})
    holidays = await HolidayService.query(
        db,
        country,
        start=start,
        end=end,
        years=[year] if year is not None else None,
    )
    return ok([PublicHolidayOut.model_validate(h) for h in holidays])


# ── GET /dashboard ──────────────────────────────────────────────────

@router.get("/dashboard", response_model=Envelope[list[PublicHolidayOut]])
async def holiday_dashboard(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current and next year's holidays for every country with users."""
    return ok(await HolidayService.dashboard(db, date.today()))


# ── POST /sync ──────────────────────────────────────────────────────
# Registered before /{country} so "sync" is never read as a country code.

@router.post("/sync", response_model=Envelope[SyncReport])
@limiter.limit("5/minute")
async def sync_holidays(
    request: Request,
    body: Optional[HolidaySyncRequest] = None,
    admin: User = Depends(require_admin),
    provider: HolidayProvider = Depends(get_holiday_provider),
    db: AsyncSession = Depends(get_db),
):
    """Pull holidays from the provider; unreachable pairs keep their cached rows."""
    body = body or HolidaySyncRequest()
    return ok(
        await HolidayService.sync(
            db, provider, countries=body.countries, years=body.years,
        )
    )


# ── POST /{country} ─────────────────────────────────────────────────

@router.post("/{country}", response_model=Envelope[IngestResult])
async def ingest_holidays(
    body: HolidayIngestRequest,
    country: str = Path(..., min_length=2, max_length=2),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Upsert holiday records into one country's calendar."""
    return ok(await HolidayService.ingest(db, country, body.records))


# ── DELETE /{country}/{holiday_date} ────────────────────────────────

@router.delete("/{country}/{holiday_date}", response_model=Envelope[PublicHolidayOut])
async def remove_holiday(
    holiday_date: date,
    country: str = Path(..., min_length=2, max_length=2),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Remove one cached holiday."""
    return ok(
        await HolidayService.remove(db, country, holiday_date, actor_id=admin.id)
    )
