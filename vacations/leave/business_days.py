"""Business-day calculator.

A business day is a Monday–Friday date that is not in the exclusion set
(the cached public holidays of the relevant country). With an empty
exclusion set this is a plain weekday count.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import AbstractSet, Iterator

# date.weekday(): Monday=0 … Sunday=6
WEEKEND_DAYS = frozenset({5, 6})


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar date from *start* to *end* inclusive (nothing if start > end)."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def is_business_day(day: date, excluded_dates: AbstractSet[date] = frozenset()) -> bool:
    return day.weekday() not in WEEKEND_DAYS and day not in excluded_dates


def business_dates(
    start: date,
    end: date,
    excluded_dates: AbstractSet[date] = frozenset(),
) -> list[date]:
    """The business days in ``[start, end]``, ascending."""
    return [d for d in iter_dates(start, end) if is_business_day(d, excluded_dates)]


def count_business_days(
    start: date,
    end: date,
    excluded_dates: AbstractSet[date] = frozenset(),
) -> int:
    """Count business days in ``[start, end]``.

    Total: returns 0 when ``start > end``. Callers enforce ordering upstream.
    """
    return len(business_dates(start, end, excluded_dates))
