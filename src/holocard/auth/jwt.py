"""JWT session tokens for federated (GitHub) sign-in.

Learn: The federated backend keeps no server-side session row. After
the OAuth callback the shaped token (see auth.federated) is signed and
stored in an HttpOnly cookie; every request verifies it again.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from holocard.config import Settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_session_token(
    claims: dict[str, Any],
    settings: Settings,
    expires_seconds: Optional[int] = None,
) -> str:
    """Sign a session token carrying the given claims."""
    if not claims.get("sub"):
        raise TokenError("Session token requires a subject")
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "type": "session",
        "iat": now,
        "exp": now + timedelta(seconds=expires_seconds or settings.session_ttl_seconds),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: Settings) -> dict:
    """Verify and decode a session token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if payload.get("type") != "session":
        raise TokenError("Not a session token")
    return payload
