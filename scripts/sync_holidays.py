#!/usr/bin/env python3
"""Holiday Sync: cron wrapper that refreshes the public holiday cache.

Pulls public holidays from Nager.Date for every country that has users (or
the ones given with --country) for the current and next year (or the ones
given with --year), and upserts them into ``public_holidays``. A provider
failure for one country/year is logged and skipped; cached rows stay.

Usage:
    python scripts/sync_holidays.py                         # all user countries
    python scripts/sync_holidays.py --country PT --country ES
    python scripts/sync_holidays.py --year 2026 --dry-run   # fetch only, no writes

Requires .env at project root with DATABASE_URL and JWT_SECRET.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# ── Path setup ────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv

# Load .env from project root before settings are read
load_dotenv(PROJECT_ROOT / ".env")

from vacations.config import settings
from vacations.database import async_session_factory, engine
from vacations.holidays.provider import NagerDateProvider
from vacations.holidays.schemas import SyncReport
from vacations.holidays.service import HolidayService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("sync_holidays")


async def run_sync(
    countries: list[str] | None,
    years: list[int] | None,
    dry_run: bool,
) -> SyncReport:
    provider = NagerDateProvider()
    try:
        async with async_session_factory() as session:
            report = await HolidayService.sync(
                session, provider, countries=countries, years=years, dry_run=dry_run,
            )
            if dry_run:
                await session.rollback()
            else:
                await session.commit()
    finally:
        await engine.dispose()
    return report


def main():
    parser = argparse.ArgumentParser(
        description="Holiday Sync: refresh the public holiday cache from Nager.Date",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Cron schedule (recommended):
    0 3 * * 1    (weekly, Monday 03:00)
""",
    )
    parser.add_argument(
        "--country", action="append", dest="countries", metavar="CODE",
        help="ISO country code; repeatable (default: every country with users)",
    )
    parser.add_argument(
        "--year", action="append", dest="years", type=int, metavar="YEAR",
        help="Year to pull; repeatable (default: current and next year)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Fetch from API but don't write")
    args = parser.parse_args()

    start_time = time.time()
    report = asyncio.run(run_sync(args.countries, args.years, args.dry_run))
    elapsed = time.time() - start_time

    print(f"""
{'=' * 60}
  HOLIDAY SYNC COMPLETE: {elapsed:.1f}s elapsed
  Countries : {', '.join(report.countries) or 'none'}
  Years     : {', '.join(str(y) for y in report.years)}
  Dry run   : {args.dry_run}
  Failures  : {len(report.failures)}
{'=' * 60}
""")

    for key, count in report.stored.items():
        print(f"  ✅ {key:<12} {count} holidays")
    for failure in report.failures:
        print(f"  ❌ {failure.country}-{failure.year:<7} {failure.reason}")

    if report.failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
