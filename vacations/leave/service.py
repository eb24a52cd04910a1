"""Leave service layer: request lifecycle, team views, out-of-office lookups.

Business logic:
  - Submission with advisory team/holiday conflicts and admin auto-approval
  - Admin decisions (approve / reject) with idempotent re-application
  - Cancellation by the owner or an admin before the leave starts
  - Team and personal request listings with display labels

Each operation runs inside the caller's transaction. Rows are loaded
``FOR UPDATE`` before a transition and the mapper's version column turns a
stale concurrent write into ``InvalidStateError``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from vacations.common.audit import create_audit_entry, utcnow
from vacations.common.constants import (
    LEAVE_STATUS_LABELS,
    LEAVE_TYPE_LABELS,
    DecisionOutcome,
    EventName,
    LeaveStatus,
    LeaveType,
)
from vacations.common.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    SchedulingConflictError,
    ValidationError,
)
from vacations.common.pagination import PaginatedResponse, PaginationParams, paginate
from vacations.config import settings
from vacations.leave.business_days import count_business_days
from vacations.leave.conflicts import ConflictDetector
from vacations.leave.models import LeaveRequest
from vacations.leave.schemas import (
    LeaveRequestCreate,
    LeaveRequestOut,
    OutOfOfficeEntry,
    SubmitResult,
    UserBrief,
)
from vacations.notifications.events import publish_on_commit
from vacations.users.models import User

logger = logging.getLogger(__name__)

_OUTCOME_EVENTS = {
    DecisionOutcome.approved: EventName.request_approved,
    DecisionOutcome.rejected: EventName.request_rejected,
}


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave lifecycle operations: submit, decide, cancel, listings."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def to_out(req: LeaveRequest, owner: Optional[User] = None) -> LeaveRequestOut:
        """Response model with display labels; *owner* overrides the relationship."""
        owner = owner or req.owner
        return LeaveRequestOut(
            id=req.id,
            user_id=req.user_id,
            start_date=req.start_date,
            end_date=req.end_date,
            leave_type=req.leave_type,
            status=req.status,
            notes=req.notes,
            approved_by=req.approved_by,
            created_at=req.created_at,
            updated_at=req.updated_at,
            type_label=LEAVE_TYPE_LABELS[req.leave_type],
            status_label=LEAVE_STATUS_LABELS[req.status],
            owner=UserBrief.model_validate(owner) if owner is not None else None,
        )

    @staticmethod
    def _snapshot(req: LeaveRequest) -> dict[str, Any]:
        return {
            "status": req.status.value,
            "approved_by": str(req.approved_by) if req.approved_by else None,
        }

    @staticmethod
    def _event_payload(
        req: LeaveRequest,
        owner: User,
        actor_id: uuid.UUID,
    ) -> dict[str, Any]:
        return {
            "request_id": str(req.id),
            "user_id": str(req.user_id),
            "owner_name": owner.display_name,
            "email": owner.email,
            "leave_type": req.leave_type.value,
            "start_date": req.start_date.isoformat(),
            "end_date": req.end_date.isoformat(),
            "status": req.status.value,
            "actor_id": str(actor_id),
        }

    @staticmethod
    def _publish(db: AsyncSession, event: EventName, payload: dict[str, Any]) -> None:
        publish_on_commit(db, EventName.requests_changed, payload)
        publish_on_commit(db, event, payload)

    @staticmethod
    async def _flush(db: AsyncSession) -> None:
        try:
            await db.flush()
        except StaleDataError as exc:
            raise InvalidStateError(
                "Leave request was modified concurrently. Reload and try again."
            ) from exc

    @staticmethod
    async def _get_for_update(
        db: AsyncSession,
        request_id: uuid.UUID,
    ) -> LeaveRequest:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        req = result.scalars().first()
        if req is None:
            raise NotFoundError("LeaveRequest", str(request_id))
        return req

    # ─────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def submit(
        db: AsyncSession,
        caller: Optional[User],
        data: LeaveRequestCreate,
        *,
        block_on_conflict: Optional[bool] = None,
    ) -> SubmitResult:
        """Create a leave request.

        Admin submissions are approved immediately with ``approved_by`` set
        to the submitter; everything else starts as pending. Team and holiday
        overlaps are returned alongside the request and do not prevent the
        write unless the blocking policy is switched on.
        """
        if caller is None:
            raise AuthenticationError()

        try:
            leave_type = LeaveType(data.leave_type)
        except ValueError:
            raise ValidationError({"leave_type": [f"Unknown leave type '{data.leave_type}'."]})
        if data.start_date > data.end_date:
            raise ValidationError(
                {"end_date": ["End date must be after or equal to start date."]}
            )

        conflicts = await ConflictDetector.check(
            db, caller.country, data.start_date, data.end_date,
        )

        if block_on_conflict is None:
            block_on_conflict = settings.BLOCK_ON_TEAM_CONFLICT
        if block_on_conflict and conflicts.team:
            raise SchedulingConflictError(
                [c.model_dump(mode="json") for c in conflicts.team]
            )

        if caller.is_admin:
            status, approved_by = LeaveStatus.approved, caller.id
        else:
            status, approved_by = LeaveStatus.pending, None

        req = LeaveRequest(
            user_id=caller.id,
            start_date=data.start_date,
            end_date=data.end_date,
            leave_type=leave_type,
            status=status,
            notes=data.notes,
            approved_by=approved_by,
        )
        db.add(req)
        await LeaveService._flush(db)

        await create_audit_entry(
            db,
            action="submit",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=caller.id,
            new_values={
                "start_date": req.start_date.isoformat(),
                "end_date": req.end_date.isoformat(),
                "leave_type": leave_type.value,
                **LeaveService._snapshot(req),
            },
        )

        holidays = {h.date for h in conflicts.holidays}
        days = count_business_days(req.start_date, req.end_date, holidays)
        logger.info(
            "Leave request %s submitted by %s (%s, %d business days, %d team conflicts)",
            req.id, caller.id, status.value, days, len(conflicts.team),
        )

        payload = LeaveService._event_payload(req, caller, caller.id)
        LeaveService._publish(db, EventName.request_submitted, payload)
        if status == LeaveStatus.approved:
            publish_on_commit(db, EventName.request_approved, payload)

        return SubmitResult(
            request=LeaveService.to_out(req, caller),
            conflicts=conflicts,
            business_days=days,
        )

    # ─────────────────────────────────────────────────────────────────
    # Decide (admin)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def decide(
        db: AsyncSession,
        request_id: uuid.UUID,
        outcome: DecisionOutcome,
        caller: Optional[User],
    ) -> LeaveRequestOut:
        """Approve or reject a request.

        ``rejected`` is terminal, so approving a rejected request fails.
        Re-applying the current outcome is a no-op.
        """
        if caller is None:
            raise AuthenticationError()
        if not caller.is_admin:
            raise AuthorizationError("Only admins can approve or reject leave requests.")

        req = await LeaveService._get_for_update(db, request_id)
        if req.status == LeaveStatus.rejected and outcome == DecisionOutcome.approved:
            raise InvalidStateError("Rejected leave requests cannot be approved.")

        if outcome == DecisionOutcome.approved:
            new_status, new_approver = LeaveStatus.approved, caller.id
        else:
            new_status, new_approver = LeaveStatus.rejected, None

        # Same outcome again: keep the original approver, publish nothing.
        if req.status == new_status:
            return LeaveService.to_out(req)

        old_values = LeaveService._snapshot(req)
        req.status = new_status
        req.approved_by = new_approver
        req.updated_at = utcnow()
        await LeaveService._flush(db)

        await create_audit_entry(
            db,
            action=outcome.value,
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=caller.id,
            old_values=old_values,
            new_values=LeaveService._snapshot(req),
        )
        logger.info("Leave request %s %s by %s", req.id, outcome.value, caller.id)

        LeaveService._publish(
            db,
            _OUTCOME_EVENTS[outcome],
            LeaveService._event_payload(req, req.owner, caller.id),
        )
        return LeaveService.to_out(req)

    # ─────────────────────────────────────────────────────────────────
    # Cancel (owner or admin)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def cancel(
        db: AsyncSession,
        request_id: uuid.UUID,
        caller: Optional[User],
        *,
        today: Optional[date] = None,
    ) -> LeaveRequestOut:
        """Withdraw a request that has not started yet; it becomes ``rejected``."""
        if caller is None:
            raise AuthenticationError()

        req = await LeaveService._get_for_update(db, request_id)
        if req.user_id != caller.id and not caller.is_admin:
            raise ForbiddenError("You can only cancel your own leave requests.")
        if req.status == LeaveStatus.rejected:
            raise InvalidStateError("Leave request is already rejected or cancelled.")

        today = today or date.today()
        if req.start_date < today:
            raise InvalidStateError("Cannot cancel leave that has already started.")

        old_values = LeaveService._snapshot(req)
        req.status = LeaveStatus.rejected
        req.approved_by = None
        req.updated_at = utcnow()
        await LeaveService._flush(db)

        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave_request",
            entity_id=req.id,
            actor_id=caller.id,
            old_values=old_values,
            new_values=LeaveService._snapshot(req),
        )
        logger.info("Leave request %s cancelled by %s", req.id, caller.id)

        LeaveService._publish(
            db,
            EventName.request_cancelled,
            LeaveService._event_payload(req, req.owner, caller.id),
        )
        return LeaveService.to_out(req)

    # ─────────────────────────────────────────────────────────────────
    # Listings
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_team_requests(
        db: AsyncSession,
        params: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse:
        """Team calendar: every non-rejected request, earliest first."""
        query = select(LeaveRequest).where(LeaveRequest.status != LeaveStatus.rejected)
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        if from_date is not None:
            query = query.where(LeaveRequest.end_date >= from_date)
        if to_date is not None:
            query = query.where(LeaveRequest.start_date <= to_date)
        query = query.order_by(LeaveRequest.start_date, LeaveRequest.created_at)

        return await paginate(
            db, query, params, model=LeaveRequest, transform=LeaveService.to_out,
        )

    @staticmethod
    async def list_my_requests(
        db: AsyncSession,
        caller: User,
        params: PaginationParams,
    ) -> PaginatedResponse:
        """The caller's own requests in every status, most recent start first."""
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.user_id == caller.id)
            .order_by(LeaveRequest.start_date.desc(), LeaveRequest.created_at.desc())
        )
        return await paginate(
            db, query, params, model=LeaveRequest, transform=LeaveService.to_out,
        )

    # ─────────────────────────────────────────────────────────────────
    # Out of office
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def out_of_office(db: AsyncSession, on_date: date) -> list[OutOfOfficeEntry]:
        """Approved requests covering *on_date*."""
        result = await db.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.status == LeaveStatus.approved,
                LeaveRequest.start_date <= on_date,
                LeaveRequest.end_date >= on_date,
            )
            .order_by(LeaveRequest.start_date, LeaveRequest.created_at)
        )
        return [
            OutOfOfficeEntry(
                request_id=req.id,
                user_id=req.user_id,
                owner_name=req.owner.display_name,
                email=req.owner.email,
                start_date=req.start_date,
                end_date=req.end_date,
                leave_type=req.leave_type,
            )
            for req in result.scalars().all()
        ]
