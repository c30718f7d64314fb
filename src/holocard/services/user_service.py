"""User service — local username/password accounts.

Learn: Username uniqueness is enforced by the database, not by a
pre-check: we insert and translate the UNIQUE constraint violation into
a Conflict. A check-then-insert would race under concurrent signups.

authenticate() returns None for BOTH an unknown username and a wrong
password, so callers can't accidentally tell the two apart.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from holocard.auth.password import hash_password, verify_password
from holocard.db.models import User
from holocard.errors import AppError, Conflict

logger = structlog.get_logger()


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


class UserService:
    """Business logic for local accounts."""

    def __init__(self, db: AsyncSession, bcrypt_rounds: int = 10):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    async def create_user(self, username: str, password: str) -> User:
        user = User(
            username=username,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_unique_violation(e):
                raise Conflict("Username already exists", code="auth/username-taken")
            logger.warning("user.create_failed", error=str(e.orig))
            raise AppError("An error occurred", code="storage/failed", status_code=500)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("user.create_failed", error=str(e))
            raise AppError("An error occurred", code="storage/failed", status_code=500)

        logger.info("user.created", user_id=user.id, username=username)
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalars().first()

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        """Return the user if the password matches, else None."""
        user = await self.get_by_username(username)
        if user is None:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user
