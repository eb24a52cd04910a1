"""Auth dependencies: bearer JWT validation and the admin capability gate."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.auth.service import get_user_from_token
from vacations.common.exceptions import AuthenticationError, AuthorizationError
from vacations.database import get_db
from vacations.users.models import User


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationError("Missing or invalid Authorization header.")
    return auth_header[7:]


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate the JWT and return the authenticated User."""
    token = _extract_bearer(request)
    return await get_user_from_token(db, token)


# ── Admin capability ────────────────────────────────────────────────

async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError()
    return user
