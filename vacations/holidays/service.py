"""Holiday calendar cache: upsert ingestion, ordered reads, provider sync.

Rows are keyed by ``(country, date)``. Ingestion is a single
``INSERT … ON CONFLICT DO UPDATE`` so concurrent syncs never duplicate a
row; re-ingesting a record refreshes ``updated_at`` and the descriptive
fields only. When the provider is unreachable the affected country/year is
skipped and the cached rows stay authoritative.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.common.audit import create_audit_entry, utcnow
from vacations.common.constants import EventName
from vacations.common.exceptions import NotFoundError, UpstreamUnavailableError
from vacations.holidays.models import PublicHoliday
from vacations.holidays.provider import HolidayProvider
from vacations.holidays.schemas import (
    HolidayRecord,
    IngestResult,
    PublicHolidayOut,
    SyncFailure,
    SyncReport,
)
from vacations.notifications.events import publish_on_commit
from vacations.users.models import User

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def normalise_country(country: str) -> str:
    return country.strip().upper()


class HolidayService:
    """Async operations over the ``public_holidays`` cache."""

    # ─────────────────────────────────────────────────────────────────
    # Ingest
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def ingest(
        db: AsyncSession,
        country: str,
        records: Sequence[HolidayRecord],
        *,
        now: Optional[datetime] = None,
    ) -> IngestResult:
        """Upsert *records* into *country*'s calendar.

        Duplicate dates inside one batch collapse to the last record, since
        a single upsert statement may touch each key only once.
        """
        country = normalise_country(country)
        if not records:
            return IngestResult(country=country, ingested=0)

        now = now or utcnow()
        by_date: dict[date, HolidayRecord] = {r.date: r for r in records}
        rows = [
            {
                "id": uuid.uuid4(),
                "country": country,
                "date": rec.date,
                "name": rec.name,
                "local_name": rec.local_name,
                "type": rec.type,
                "year": rec.date.year,
                "created_at": now,
                "updated_at": now,
            }
            for rec in by_date.values()
        ]

        dialect = db.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Holiday upsert is not supported on dialect '{dialect}'")

        stmt = insert(PublicHoliday).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=[PublicHoliday.country, PublicHoliday.date],
            set_={
                "name": stmt.excluded.name,
                "local_name": stmt.excluded.local_name,
                "type": stmt.excluded.type,
                "updated_at": now,
            },
        )
        await db.execute(stmt)
        await db.flush()

        logger.info("Ingested %d holidays for %s", len(rows), country)
        publish_on_commit(
            db,
            EventName.holidays_changed,
            {"country": country, "dates": sorted(d.isoformat() for d in by_date)},
        )
        return IngestResult(country=country, ingested=len(rows))

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def query(
        db: AsyncSession,
        country: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        years: Optional[Iterable[int]] = None,
    ) -> list[PublicHoliday]:
        """Cached holidays for one country, ordered by date.

        ``start``/``end`` bound the date range inclusively; ``years``
        restricts to those calendar years. Both may be combined.
        """
        query = (
            select(PublicHoliday)
            .where(PublicHoliday.country == normalise_country(country))
            .order_by(PublicHoliday.date)
            .execution_options(populate_existing=True)
        )
        if start is not None:
            query = query.where(PublicHoliday.date >= start)
        if end is not None:
            query = query.where(PublicHoliday.date <= end)
        if years is not None:
            query = query.where(PublicHoliday.year.in_(list(years)))

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def query_many(
        db: AsyncSession,
        countries: Sequence[str],
        years: Sequence[int],
    ) -> list[PublicHoliday]:
        """Holidays for several countries and years, ordered by date then country."""
        if not countries or not years:
            return []

        result = await db.execute(
            select(PublicHoliday)
            .where(
                PublicHoliday.country.in_([normalise_country(c) for c in countries]),
                PublicHoliday.year.in_(list(years)),
            )
            .order_by(PublicHoliday.date, PublicHoliday.country)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    @staticmethod
    async def holiday_dates(
        db: AsyncSession,
        country: Optional[str],
        start: date,
        end: date,
    ) -> set[date]:
        """Exclusion set for the business-day calculator; empty without a country."""
        if not country:
            return set()

        result = await db.execute(
            select(PublicHoliday.date).where(
                PublicHoliday.country == normalise_country(country),
                PublicHoliday.date >= start,
                PublicHoliday.date <= end,
            )
        )
        return {row[0] for row in result.all()}

    @staticmethod
    async def active_countries(db: AsyncSession) -> list[str]:
        """Distinct countries that at least one user belongs to."""
        result = await db.execute(
            select(User.country)
            .where(User.country.is_not(None))
            .distinct()
            .order_by(User.country)
        )
        return [normalise_country(c) for c in result.scalars().all() if c]

    @staticmethod
    async def dashboard(db: AsyncSession, today: date) -> list[PublicHolidayOut]:
        """Holidays of every active country for the current and next year."""
        countries = await HolidayService.active_countries(db)
        holidays = await HolidayService.query_many(
            db, countries, [today.year, today.year + 1],
        )
        return [PublicHolidayOut.model_validate(h) for h in holidays]

    # ─────────────────────────────────────────────────────────────────
    # Sync from provider
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def sync(
        db: AsyncSession,
        provider: HolidayProvider,
        *,
        countries: Optional[Sequence[str]] = None,
        years: Optional[Sequence[int]] = None,
        today: Optional[date] = None,
        dry_run: bool = False,
    ) -> SyncReport:
        """Pull each country/year from *provider* and ingest it.

        A provider failure for one pair is logged, recorded in the report
        and skipped; it never aborts the remaining pairs.
        """
        today = today or date.today()
        if countries is None:
            countries = await HolidayService.active_countries(db)
        countries = sorted({normalise_country(c) for c in countries})
        years = sorted(set(years)) if years else [today.year, today.year + 1]

        report = SyncReport(countries=list(countries), years=list(years))
        if not countries:
            logger.info("No active countries found, skipping holiday sync")
            return report

        logger.info(
            "Syncing holidays for countries: %s for years: %s",
            ", ".join(countries), ", ".join(str(y) for y in years),
        )
        for country in countries:
            for year in years:
                key = f"{country}-{year}"
                try:
                    records = await provider.fetch_holidays(country, year)
                except UpstreamUnavailableError as exc:
                    logger.warning("Keeping cached holidays for %s: %s", key, exc.detail)
                    report.failures.append(
                        SyncFailure(country=country, year=year, reason=exc.detail)
                    )
                    continue

                if not dry_run:
                    await HolidayService.ingest(db, country, records)
                report.stored[key] = len(records)
                logger.info("Stored %d holidays for %s", len(records), key)

        return report

    # ─────────────────────────────────────────────────────────────────
    # Administrative removal
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def remove(
        db: AsyncSession,
        country: str,
        holiday_date: date,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PublicHolidayOut:
        """Delete one cached holiday; the only way a row ever leaves the cache."""
        country = normalise_country(country)
        result = await db.execute(
            select(PublicHoliday).where(
                PublicHoliday.country == country,
                PublicHoliday.date == holiday_date,
            )
        )
        holiday = result.scalars().first()
        if holiday is None:
            raise NotFoundError("PublicHoliday", f"{country}/{holiday_date.isoformat()}")

        removed = PublicHolidayOut.model_validate(holiday)
        await db.delete(holiday)
        await db.flush()

        await create_audit_entry(
            db,
            action="remove",
            entity_type="public_holiday",
            entity_id=removed.id,
            actor_id=actor_id,
            old_values={
                "country": country,
                "date": holiday_date.isoformat(),
                "name": removed.name,
            },
        )
        publish_on_commit(
            db,
            EventName.holidays_changed,
            {"country": country, "dates": [holiday_date.isoformat()]},
        )
        return removed
