"""Persistence behaviour that needs more than one connection: optimistic
versioning across sessions and foreign-key enforcement.

These tests use a file-backed SQLite database so that each session gets
its own connection, with ``PRAGMA foreign_keys`` switched on.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import delete, event, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vacations.common.constants import DecisionOutcome, EventName, LeaveStatus
from vacations.common.exceptions import InvalidStateError
from vacations.database import Base
from vacations.leave.models import LeaveRequest
from vacations.leave.service import LeaveService
from vacations.users.models import User
from tests.factories import make_admin, make_request, make_user


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'vacations.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn, connection_record):
        dbapi_conn.create_function(
            "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
        )
        dbapi_conn.create_function(
            "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
        )
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def _seed(factory) -> tuple[uuid.UUID, uuid.UUID, uuid.UUID]:
    """An admin, a member and one pending request; returns their ids."""
    async with factory() as s:
        admin = await make_admin(s)
        member = await make_user(s)
        req = await make_request(s, member, start=date(2025, 8, 4), end=date(2025, 8, 8))
        ids = admin.id, member.id, req.id
        await s.commit()
    return ids


class TestConcurrentDecisions:
    async def test_stale_write_is_rejected(self, session_factory):
        admin_id, _, request_id = await _seed(session_factory)

        async with session_factory() as a, session_factory() as b:
            stale = await LeaveService._get_for_update(a, request_id)
            assert stale.version == 1

            admin_b = await b.get(User, admin_id)
            await LeaveService.decide(b, request_id, DecisionOutcome.approved, admin_b)
            await b.commit()

            stale.status = LeaveStatus.rejected
            with pytest.raises(InvalidStateError):
                await LeaveService._flush(a)
            await a.rollback()

        async with session_factory() as s:
            stored = await s.get(LeaveRequest, request_id)
            assert stored.status == LeaveStatus.approved
            assert stored.approved_by == admin_id
            assert stored.version == 2

    async def test_decision_on_stale_row_publishes_nothing(
        self, session_factory, captured_events, monkeypatch,
    ):
        admin_id, _, request_id = await _seed(session_factory)

        async with session_factory() as a, session_factory() as b:
            stale = await LeaveService._get_for_update(a, request_id)
            admin_a = await a.get(User, admin_id)

            async def _already_loaded(db, rid):
                return stale

            monkeypatch.setattr(LeaveService, "_get_for_update", staticmethod(_already_loaded))

            b_req = await b.get(LeaveRequest, request_id)
            b_req.notes = "edited elsewhere"
            await b.commit()

            with pytest.raises(InvalidStateError):
                await LeaveService.decide(a, request_id, DecisionOutcome.rejected, admin_a)
            await a.rollback()

        assert all(evt != EventName.request_rejected for evt, _ in captured_events)
        async with session_factory() as s:
            stored = await s.get(LeaveRequest, request_id)
            assert stored.status == LeaveStatus.pending
            assert stored.notes == "edited elsewhere"


class TestForeignKeys:
    async def test_deleting_user_with_requests_is_refused(self, session_factory):
        _, member_id, request_id = await _seed(session_factory)

        async with session_factory() as s:
            with pytest.raises(IntegrityError):
                await s.execute(delete(User).where(User.id == member_id))
            await s.rollback()

        async with session_factory() as s:
            result = await s.execute(
                select(LeaveRequest).where(LeaveRequest.user_id == member_id)
            )
            assert [r.id for r in result.scalars().all()] == [request_id]

    def test_owner_fk_does_not_cascade(self):
        (fk,) = LeaveRequest.__table__.c.user_id.foreign_keys
        assert fk.ondelete is None


class TestUserTable:
    def test_columns(self):
        assert set(User.__table__.c.keys()) == {
            "id", "name", "email", "role", "country", "created_at", "updated_at",
        }
