"""Success envelope shared by every endpoint: ``{"success": true, "data": ...}``."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Discriminated result; failures are produced by the exception handlers."""

    success: bool = True
    data: T


def ok(data: T) -> Envelope[T]:
    return Envelope(data=data)
