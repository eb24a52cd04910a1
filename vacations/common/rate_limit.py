"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance that can be imported by routers
for per-endpoint rate limiting, and wired into the FastAPI app in main.py.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from vacations.common.exceptions import failure_body

# Default: 60 requests/minute per client IP for all endpoints.
# Individual routes can override with @limiter.limit("N/period").
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Render slowapi rejections with the standard failure envelope."""
    return JSONResponse(
        status_code=429,
        content=failure_body(
            request,
            error_type="rate-limited",
            title="Too Many Requests",
            status=429,
            detail=f"Rate limit exceeded: {exc.detail}",
        ),
    )
