"""Holiday cache Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HolidayRecord(BaseModel):
    """One holiday as delivered by the provider (or an admin) for ingestion.

    Accepts the provider's camelCase keys (``localName``, ``types``).
    """

    model_config = ConfigDict(populate_by_name=True)

    date: date
    name: str = Field(..., min_length=1, max_length=255)
    local_name: Optional[str] = Field(None, alias="localName", max_length=255)
    type: str = Field("Public", max_length=50)

    @classmethod
    def from_provider(cls, raw: dict) -> "HolidayRecord":
        """Build from a Nager.Date payload, which carries ``types`` (v3) or ``type``."""
        types = raw.get("types") or []
        return cls(
            date=raw["date"],
            name=raw["name"],
            localName=raw.get("localName"),
            type=raw.get("type") or (types[0] if types else "Public"),
        )


class HolidayIngestRequest(BaseModel):
    """Payload for an administrative ingest into one country's calendar."""

    records: list[HolidayRecord] = Field(..., min_length=1)


class HolidaySyncRequest(BaseModel):
    """Payload for a provider sync; omitted fields use the defaults."""

    countries: Optional[list[str]] = Field(
        None, description="ISO country codes; defaults to every country with users",
    )
    years: Optional[list[int]] = Field(
        None, description="Years to pull; defaults to current and next year",
    )

    @field_validator("countries")
    @classmethod
    def normalise_countries(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        if v is None:
            return v
        return [c.strip().upper() for c in v if c and c.strip()]


class PublicHolidayOut(BaseModel):
    """Cached holiday row."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    country: str
    date: date
    name: str
    local_name: Optional[str] = None
    type: str
    year: int
    created_at: datetime
    updated_at: datetime


class IngestResult(BaseModel):
    country: str
    ingested: int


class SyncFailure(BaseModel):
    country: str
    year: int
    reason: str


class SyncReport(BaseModel):
    """Outcome of a provider sync; failures are warnings, not errors."""

    countries: list[str] = []
    years: list[int] = []
    stored: dict[str, int] = Field(
        default_factory=dict, description='"PT-2025" → number of holidays stored',
    )
    failures: list[SyncFailure] = []
