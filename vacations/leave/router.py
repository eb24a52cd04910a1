"""Leave router: submit, decide, cancel, listings, conflicts, balance.

All endpoints require authentication. Decisions require the admin capability.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.auth.dependencies import get_current_user, require_admin
from vacations.common.constants import LeaveStatus
from vacations.common.exceptions import ForbiddenError
from vacations.common.pagination import PaginatedResponse, PaginationParams
from vacations.common.responses import Envelope, ok
from vacations.database import get_db
from vacations.leave.balance import BalanceService
from vacations.leave.conflicts import ConflictDetector
from vacations.leave.schemas import (
    ConflictReport,
    DateRange,
    LeaveDecisionRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
    OutOfOfficeEntry,
    PtoBalanceOut,
    SubmitResult,
)
from vacations.leave.service import LeaveService
from vacations.users.models import User

router = APIRouter(prefix="", tags=["leave"])


# ── POST /requests ──────────────────────────────────────────────────

@router.post("/requests", response_model=Envelope[SubmitResult], status_code=201)
async def submit_request(
    body: LeaveRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request. Conflicts are returned as advisory data."""
    return ok(await LeaveService.submit(db, user, body))


# ── GET /requests (team view) ──────────────────────────────────────

@router.get("/requests", response_model=Envelope[PaginatedResponse[LeaveRequestOut]])
async def team_requests(
    status: Optional[LeaveStatus] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Non-rejected requests of the whole team, earliest first."""
    return ok(
        await LeaveService.list_team_requests(
            db, pagination, status=status, from_date=from_date, to_date=to_date,
        )
    )


# ── GET /requests/mine ──────────────────────────────────────────────

@router.get("/requests/mine", response_model=Envelope[PaginatedResponse[LeaveRequestOut]])
async def my_requests(
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The authenticated user's requests in every status."""
    return ok(await LeaveService.list_my_requests(db, user, pagination))


# ── PUT /requests/{id}/decision ─────────────────────────────────────

@router.put("/requests/{request_id}/decision", response_model=Envelope[LeaveRequestOut])
async def decide_request(
    request_id: uuid.UUID,
    body: LeaveDecisionRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a leave request."""
    return ok(await LeaveService.decide(db, request_id, body.outcome, admin))


# ── POST /requests/{id}/cancel ──────────────────────────────────────

@router.post("/requests/{request_id}/cancel", response_model=Envelope[LeaveRequestOut])
async def cancel_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a request that has not started yet (owner or admin)."""
    return ok(await LeaveService.cancel(db, request_id, user))


# ── POST /conflicts ─────────────────────────────────────────────────

@router.post("/conflicts", response_model=Envelope[ConflictReport])
async def check_conflicts(
    body: DateRange,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Team and public-holiday overlaps for a proposed range."""
    return ok(
        await ConflictDetector.check(db, user.country, body.start_date, body.end_date)
    )


# ── GET /balance ────────────────────────────────────────────────────

@router.get("/balance", response_model=Envelope[PtoBalanceOut])
async def pto_balance(
    year: Optional[int] = Query(None, ge=1900, le=2999),
    user_id: Optional[uuid.UUID] = Query(None, description="Admins may query other users"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """PTO balance for a calendar year (defaults to the current year)."""
    target = user_id or user.id
    if target != user.id and not user.is_admin:
        raise ForbiddenError("You can only view your own balance.")
    return ok(
        await BalanceService.compute_balance(db, target, year or date.today().year)
    )


# ── GET /out-of-office ──────────────────────────────────────────────

@router.get("/out-of-office", response_model=Envelope[list[OutOfOfficeEntry]])
async def out_of_office(
    on: Optional[date] = Query(None, description="Defaults to today"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Everyone on approved leave on the given date."""
    return ok(await LeaveService.out_of_office(db, on or date.today()))
