"""Holiday calendar cache: upsert ingestion, ordered reads, provider sync, removal."""

from __future__ import annotations

from datetime import date, datetime, timezone

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.common.audit import AuditTrail
from vacations.common.constants import EventName
from vacations.common.exceptions import NotFoundError, UpstreamUnavailableError
from vacations.holidays.models import PublicHoliday
from vacations.holidays.provider import NagerDateProvider
from vacations.holidays.schemas import HolidayRecord
from vacations.holidays.service import HolidayService
from tests.factories import make_admin, make_holiday, make_user


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


async def _row_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(PublicHoliday))).scalar_one()


class FakeProvider:
    """In-memory provider; countries in ``failing`` raise like an outage."""

    def __init__(self, data: dict[tuple[str, int], list[HolidayRecord]], failing=()):
        self.data = data
        self.failing = set(failing)
        self.calls: list[tuple[str, int]] = []

    async def fetch_holidays(self, country: str, year: int) -> list[HolidayRecord]:
        self.calls.append((country, year))
        if country in self.failing:
            raise UpstreamUnavailableError(country, year, "connection refused")
        return self.data.get((country, year), [])


# ═════════════════════════════════════════════════════════════════════
# Ingest
# ═════════════════════════════════════════════════════════════════════


class TestIngest:

    async def test_reingest_updates_timestamp_only(self, db: AsyncSession):
        record = HolidayRecord(date=date(2025, 12, 25), name="Christmas Day")
        first_at = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
        second_at = datetime(2025, 1, 2, 10, 0, tzinfo=timezone.utc)

        await HolidayService.ingest(db, "PT", [record], now=first_at)
        await HolidayService.ingest(db, "PT", [record], now=second_at)

        rows = await HolidayService.query(db, "PT")
        assert len(rows) == 1
        row = rows[0]
        assert (row.country, row.date, row.name) == ("PT", date(2025, 12, 25), "Christmas Day")
        assert row.year == 2025
        assert _naive(row.created_at) == _naive(first_at)
        assert _naive(row.updated_at) == _naive(second_at)

    async def test_reingest_refreshes_descriptive_fields(self, db: AsyncSession):
        await HolidayService.ingest(
            db, "PT", [HolidayRecord(date=date(2025, 12, 25), name="Xmas")],
        )
        await HolidayService.ingest(
            db, "PT",
            [HolidayRecord(
                date=date(2025, 12, 25), name="Christmas Day",
                localName="Natal", type="Bank",
            )],
        )

        rows = await HolidayService.query(db, "PT")
        assert len(rows) == 1
        assert rows[0].name == "Christmas Day"
        assert rows[0].local_name == "Natal"
        assert rows[0].type == "Bank"

    async def test_same_date_different_countries(self, db: AsyncSession):
        record = HolidayRecord(date=date(2025, 12, 25), name="Christmas Day")

        await HolidayService.ingest(db, "PT", [record])
        await HolidayService.ingest(db, "ES", [record])

        assert await _row_count(db) == 2

    async def test_country_code_is_normalised(self, db: AsyncSession):
        result = await HolidayService.ingest(
            db, " pt ", [HolidayRecord(date=date(2025, 6, 10), name="Portugal Day")],
        )

        assert result.country == "PT"
        assert [h.country for h in await HolidayService.query(db, "pt")] == ["PT"]

    async def test_duplicate_dates_in_one_batch_collapse(self, db: AsyncSession):
        result = await HolidayService.ingest(
            db, "PT",
            [
                HolidayRecord(date=date(2025, 12, 25), name="First"),
                HolidayRecord(date=date(2025, 12, 25), name="Last"),
            ],
        )

        assert result.ingested == 1
        rows = await HolidayService.query(db, "PT")
        assert [r.name for r in rows] == ["Last"]

    async def test_empty_batch_is_noop(self, db: AsyncSession):
        result = await HolidayService.ingest(db, "PT", [])

        assert result.ingested == 0
        assert await _row_count(db) == 0

    async def test_ingest_publishes_holidays_changed(self, db: AsyncSession, captured_events):
        await HolidayService.ingest(
            db, "PT", [HolidayRecord(date=date(2025, 12, 25), name="Christmas Day")],
        )
        assert captured_events == []

        await db.commit()

        assert captured_events == [
            (EventName.holidays_changed, {"country": "PT", "dates": ["2025-12-25"]}),
        ]

    async def test_rolled_back_ingest_publishes_nothing(self, db: AsyncSession, captured_events):
        await HolidayService.ingest(
            db, "PT", [HolidayRecord(date=date(2025, 12, 25), name="Christmas Day")],
        )

        await db.rollback()

        assert captured_events == []
        assert await _row_count(db) == 0


# ═════════════════════════════════════════════════════════════════════
# Queries
# ═════════════════════════════════════════════════════════════════════


class TestQuery:

    async def test_ordered_by_date_with_range(self, db: AsyncSession):
        await make_holiday(db, "PT", date(2025, 12, 25), "Christmas Day")
        await make_holiday(db, "PT", date(2025, 4, 25), "Freedom Day")
        await make_holiday(db, "PT", date(2025, 6, 10), "Portugal Day")

        all_rows = await HolidayService.query(db, "PT")
        summer = await HolidayService.query(
            db, "PT", start=date(2025, 5, 1), end=date(2025, 12, 25),
        )

        assert [r.name for r in all_rows] == ["Freedom Day", "Portugal Day", "Christmas Day"]
        assert [r.name for r in summer] == ["Portugal Day", "Christmas Day"]

    async def test_year_filter(self, db: AsyncSession):
        await make_holiday(db, "PT", date(2025, 1, 1))
        await make_holiday(db, "PT", date(2026, 1, 1))

        rows = await HolidayService.query(db, "PT", years=[2026])

        assert [r.date for r in rows] == [date(2026, 1, 1)]

    async def test_query_many_orders_by_date_then_country(self, db: AsyncSession):
        await make_holiday(db, "PT", date(2025, 12, 25))
        await make_holiday(db, "ES", date(2025, 12, 25))
        await make_holiday(db, "ES", date(2025, 12, 6))
        await make_holiday(db, "FR", date(2025, 7, 14))

        rows = await HolidayService.query_many(db, ["pt", "es"], [2025])

        assert [(r.country, r.date) for r in rows] == [
            ("ES", date(2025, 12, 6)),
            ("ES", date(2025, 12, 25)),
            ("PT", date(2025, 12, 25)),
        ]

    async def test_holiday_dates_without_country(self, db: AsyncSession):
        await make_holiday(db, "PT", date(2025, 12, 25))

        assert await HolidayService.holiday_dates(
            db, None, date(2025, 1, 1), date(2025, 12, 31),
        ) == set()
        assert await HolidayService.holiday_dates(
            db, "PT", date(2025, 1, 1), date(2025, 12, 31),
        ) == {date(2025, 12, 25)}

    async def test_active_countries_and_dashboard(self, db: AsyncSession):
        await make_user(db, country="PT")
        await make_user(db, country="PT")
        await make_user(db, country="ES")
        await make_user(db, country=None)
        await make_holiday(db, "PT", date(2025, 12, 25))
        await make_holiday(db, "ES", date(2026, 1, 6))
        await make_holiday(db, "ES", date(2024, 1, 6))
        await make_holiday(db, "FR", date(2025, 7, 14))

        countries = await HolidayService.active_countries(db)
        dashboard = await HolidayService.dashboard(db, date(2025, 6, 1))

        assert countries == ["ES", "PT"]
        assert [(h.country, h.date) for h in dashboard] == [
            ("PT", date(2025, 12, 25)),
            ("ES", date(2026, 1, 6)),
        ]


# ═════════════════════════════════════════════════════════════════════
# Sync
# ═════════════════════════════════════════════════════════════════════


class TestSync:

    async def test_sync_defaults_to_user_countries_current_and_next_year(self, db: AsyncSession):
        await make_user(db, country="PT")
        provider = FakeProvider({
            ("PT", 2025): [HolidayRecord(date=date(2025, 12, 25), name="Christmas Day")],
            ("PT", 2026): [HolidayRecord(date=date(2026, 1, 1), name="New Year's Day")],
        })

        report = await HolidayService.sync(db, provider, today=date(2025, 3, 1))

        assert provider.calls == [("PT", 2025), ("PT", 2026)]
        assert report.stored == {"PT-2025": 1, "PT-2026": 1}
        assert report.failures == []
        assert await _row_count(db) == 2

    async def test_provider_failure_keeps_cached_rows(self, db: AsyncSession):
        await make_holiday(db, "ES", date(2025, 12, 6), "Constitution Day")
        provider = FakeProvider(
            {("PT", 2025): [HolidayRecord(date=date(2025, 12, 25), name="Christmas Day")]},
            failing={"ES"},
        )

        report = await HolidayService.sync(
            db, provider, countries=["PT", "ES"], years=[2025],
        )

        assert report.stored == {"PT-2025": 1}
        assert [(f.country, f.year) for f in report.failures] == [("ES", 2025)]
        assert "connection refused" in report.failures[0].reason
        cached = await HolidayService.query(db, "ES")
        assert [h.name for h in cached] == ["Constitution Day"]

    async def test_dry_run_writes_nothing(self, db: AsyncSession):
        provider = FakeProvider(
            {("PT", 2025): [HolidayRecord(date=date(2025, 12, 25), name="Christmas Day")]},
        )

        report = await HolidayService.sync(
            db, provider, countries=["PT"], years=[2025], dry_run=True,
        )

        assert report.stored == {"PT-2025": 1}
        assert await _row_count(db) == 0

    async def test_no_countries_is_empty_report(self, db: AsyncSession):
        provider = FakeProvider({})

        report = await HolidayService.sync(db, provider, today=date(2025, 3, 1))

        assert report.countries == []
        assert provider.calls == []


# ═════════════════════════════════════════════════════════════════════
# Removal
# ═════════════════════════════════════════════════════════════════════


class TestRemove:

    async def test_remove_existing(self, db: AsyncSession):
        admin = await make_admin(db)
        await make_holiday(db, "PT", date(2025, 12, 25), "Christmas Day")

        removed = await HolidayService.remove(
            db, "pt", date(2025, 12, 25), actor_id=admin.id,
        )

        assert removed.name == "Christmas Day"
        assert await _row_count(db) == 0
        audit = (await db.execute(select(AuditTrail))).scalars().all()
        assert [(a.action, a.entity_type) for a in audit] == [("remove", "public_holiday")]

    async def test_remove_missing_is_not_found(self, db: AsyncSession):
        with pytest.raises(NotFoundError):
            await HolidayService.remove(db, "PT", date(2025, 12, 25))


# ═════════════════════════════════════════════════════════════════════
# Nager.Date provider
# ═════════════════════════════════════════════════════════════════════


class TestNagerDateProvider:

    async def test_parses_payload(self):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=[
                {
                    "date": "2025-12-25",
                    "localName": "Natal",
                    "name": "Christmas Day",
                    "countryCode": "PT",
                    "types": ["Public"],
                },
                {
                    "date": "2025-06-13",
                    "localName": "Santo António",
                    "name": "St. Anthony's Day",
                    "countryCode": "PT",
                    "types": ["Optional", "Public"],
                },
            ])

        provider = NagerDateProvider(
            base_url="https://holidays.test/api/v3",
            transport=httpx.MockTransport(handler),
        )
        records = await provider.fetch_holidays("PT", 2025)

        assert seen == ["https://holidays.test/api/v3/PublicHolidays/2025/PT"]
        assert [(r.date, r.name, r.local_name, r.type) for r in records] == [
            (date(2025, 12, 25), "Christmas Day", "Natal", "Public"),
            (date(2025, 6, 13), "St. Anthony's Day", "Santo António", "Optional"),
        ]

    async def test_http_error_is_upstream_unavailable(self):
        provider = NagerDateProvider(
            base_url="https://holidays.test/api/v3",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await provider.fetch_holidays("PT", 2025)

        assert exc_info.value.status_code == 502
        assert "HTTP 503" in exc_info.value.detail

    async def test_network_error_is_upstream_unavailable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = NagerDateProvider(
            base_url="https://holidays.test/api/v3",
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(UpstreamUnavailableError):
            await provider.fetch_holidays("PT", 2025)

    async def test_unexpected_shape_is_upstream_unavailable(self):
        provider = NagerDateProvider(
            base_url="https://holidays.test/api/v3",
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"error": "nope"}),
            ),
        )

        with pytest.raises(UpstreamUnavailableError):
            await provider.fetch_holidays("PT", 2025)
