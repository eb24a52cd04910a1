"""Auth service: JWT helpers for the externally issued caller identity.

Sessions are issued by the identity provider; the service only needs to
verify a bearer token whose ``sub`` is a user id. ``create_access_token``
exists for operators and tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from vacations.common.exceptions import AuthenticationError
from vacations.config import settings
from vacations.users.models import User


# ── JWT helpers ─────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    *,
    expires_in: Optional[timedelta] = None,
) -> str:
    if expires_in is None:
        expires_in = timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "type": "access",
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired.")
    except JWTError:
        raise AuthenticationError("Invalid token.")

    if payload.get("type", "access") != "access":
        raise AuthenticationError("Invalid token type.")
    return payload


# ── Identity lookup ─────────────────────────────────────────────────

async def get_user_from_token(db: AsyncSession, token: str) -> User:
    """Resolve a bearer token to its user row, or raise AuthenticationError."""
    payload = decode_access_token(token)
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Invalid token subject.")

    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User account not found.")
    return user
