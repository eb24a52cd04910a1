"""Nager.Date public holiday provider.

Implements the ``fetch_holidays(country, year)`` contract consumed by the
holiday cache sync. Documentation: https://date.nager.at/Api
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from vacations.common.exceptions import UpstreamUnavailableError
from vacations.config import settings
from vacations.holidays.schemas import HolidayRecord

logger = logging.getLogger(__name__)


class HolidayProvider(Protocol):
    async def fetch_holidays(self, country: str, year: int) -> list[HolidayRecord]:
        ...


class NagerDateProvider:
    """Async client for ``GET {base}/PublicHolidays/{year}/{country}``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.HOLIDAY_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.HOLIDAY_API_TIMEOUT
        self._transport = transport

    async def fetch_holidays(self, country: str, year: int) -> list[HolidayRecord]:
        """Fetch one country/year; any HTTP or network failure → UpstreamUnavailableError."""
        url = f"{self.base_url}/PublicHolidays/{year}/{country}"
        logger.info("Fetching holidays for %s %s", country, year)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport,
            ) as client:
                resp = await client.get(url, headers={"Accept": "application/json"})
                resp.raise_for_status()
                payload = resp.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailableError(
                country, year, f"HTTP {exc.response.status_code}",
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailableError(country, year, str(exc) or type(exc).__name__) from exc

        if not isinstance(payload, list):
            raise UpstreamUnavailableError(country, year, "unexpected response shape")

        try:
            return [HolidayRecord.from_provider(item) for item in payload]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamUnavailableError(country, year, f"malformed record: {exc}") from exc


def get_holiday_provider() -> HolidayProvider:
    """FastAPI dependency; overridden in tests."""
    return NagerDateProvider()
