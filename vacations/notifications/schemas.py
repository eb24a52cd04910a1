"""Notification Pydantic v2 schemas."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel


class DailyReportResult(BaseModel):
    date: date
    out_of_office: int
    published: bool
    message: str
