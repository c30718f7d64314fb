"""Session service — local session rows behind the session_id cookie.

Learn: A session is an opaque UUID4 string stored as the primary key of
the sessions table. The id itself is the capability: there is no
signature, and resolution is an exact-match lookup. Its only protection
is being unguessable.

Validity is purely `expires_at > now` (epoch milliseconds). Expired rows
are ignored by resolve() and left in place; purge_expired() exists for
operators (CLI) but nothing schedules it.
"""

import time
import uuid
from datetime import timedelta
from typing import Callable, Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from holocard.db.models import User, UserSession

logger = structlog.get_logger()

DEFAULT_TTL = timedelta(days=7)


def epoch_ms() -> int:
    return int(time.time() * 1000)


class SessionService:
    """Create, resolve and delete local login sessions."""

    def __init__(
        self,
        db: AsyncSession,
        ttl: timedelta = DEFAULT_TTL,
        now_ms: Callable[[], int] = epoch_ms,
    ):
        self.db = db
        self.ttl = ttl
        self.now_ms = now_ms

    async def create(self, user_id: int) -> UserSession:
        """Mint a new session for a user with an absolute expiry."""
        session = UserSession(
            id=str(uuid.uuid4()),
            user_id=user_id,
            expires_at=self.now_ms() + int(self.ttl.total_seconds() * 1000),
        )
        self.db.add(session)
        await self.db.commit()
        logger.info("session.created", user_id=user_id, session=session.id[:8])
        return session

    async def resolve(self, session_id: Optional[str]) -> Optional[User]:
        """Return the session's user, or None for missing/expired/orphaned.

        Every miss looks the same to the caller: anonymous.
        """
        if not session_id:
            return None

        session = await self.db.get(UserSession, session_id)
        if session is None:
            logger.debug("session.not_found", session=session_id[:8])
            return None

        if session.expires_at <= self.now_ms():
            logger.debug("session.expired", session=session_id[:8])
            return None

        user = await self.db.get(User, session.user_id)
        if user is None:
            logger.debug("session.orphaned", session=session_id[:8])
        return user

    async def delete(self, session_id: str) -> bool:
        """Delete a session row. Returns False when there was nothing to delete."""
        result = await self.db.execute(
            delete(UserSession).where(UserSession.id == session_id)
        )
        await self.db.commit()
        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info("session.deleted", session=session_id[:8])
        return deleted

    async def purge_expired(self) -> int:
        """Delete every expired session row. Returns the number removed."""
        result = await self.db.execute(
            delete(UserSession).where(UserSession.expires_at <= self.now_ms())
        )
        await self.db.commit()
        return result.rowcount or 0

