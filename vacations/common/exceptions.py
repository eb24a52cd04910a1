"""Custom exceptions and envelope-wrapped RFC 7807 error handlers.

Every failure leaves the API as::

    {"success": false, "error": {"type": ..., "title": ..., "status": ...,
                                 "detail": ..., "instance": ..., "errors": ...}}
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

BASE_ERROR_URI = "https://vacations.local/errors"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → failure envelope."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        super().__init__(detail)


class ValidationError(AppException):
    """422: malformed or order-violating input."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail="One or more fields failed validation.",
            errors=errors,
        )


class AuthenticationError(AppException):
    """401: no caller identity."""

    def __init__(self, detail: str = "Authentication required.") -> None:
        super().__init__(
            status_code=401,
            error_type="authentication-required",
            title="Authentication Required",
            detail=detail,
        )


class AuthorizationError(AppException):
    """403: caller lacks the admin capability."""

    def __init__(self, detail: str = "Admin access required.") -> None:
        super().__init__(
            status_code=403,
            error_type="admin-required",
            title="Admin Access Required",
            detail=detail,
        )


class ForbiddenError(AppException):
    """403: caller is neither the owner nor an admin."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class NotFoundError(AppException):
    """404: entity not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} with id '{entity_id}' does not exist.",
        )


class InvalidStateError(AppException):
    """409: illegal lifecycle transition."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=409,
            error_type="invalid-state",
            title="Invalid State",
            detail=detail,
        )


class SchedulingConflictError(AppException):
    """409: team overlap while the blocking conflict policy is on."""

    def __init__(self, conflicts: list[dict[str, Any]]) -> None:
        super().__init__(
            status_code=409,
            error_type="scheduling-conflict",
            title="Scheduling Conflict",
            detail="Scheduling conflict detected. Please choose different dates.",
            errors={"conflicts": conflicts},
        )


class UpstreamUnavailableError(AppException):
    """502: the public holiday provider could not be reached."""

    def __init__(self, country: str, year: int, reason: str) -> None:
        self.country = country
        self.year = year
        super().__init__(
            status_code=502,
            error_type="upstream-unavailable",
            title="Holiday Provider Unavailable",
            detail=f"Failed to fetch holidays for {country} in {year}: {reason}",
        )


# ── RFC 7807 builder ────────────────────────────────────────────────

def failure_body(
    request: Request,
    *,
    error_type: str,
    title: str,
    status: int,
    detail: str,
    errors: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    problem: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{error_type}",
        "title": title,
        "status": status,
        "detail": detail,
        "instance": str(request.url.path),
    }
    if errors:
        problem["errors"] = errors
    return {"success": False, "error": problem}


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=failure_body(
            request,
            error_type=exc.error_type,
            title=exc.title,
            status=exc.status_code,
            detail=exc.detail,
            errors=exc.errors,
        ),
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=422,
        content=failure_body(
            request,
            error_type="validation-error",
            title="Validation Error",
            status=422,
            detail="Request validation failed.",
            errors=field_errors,
        ),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=failure_body(
            request,
            error_type="internal-error",
            title="Internal Server Error",
            status=500,
            detail="An unexpected error occurred.",
        ),
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
