"""SQLAlchemy ORM models — the local relational store.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Column names keep the camelCase names the tables
were created with (userId, expiresAt, imagePath) so an existing
database.db keeps working; Python attributes are snake_case.

Three tables only:
- users: username + bcrypt hash
- sessions: opaque random id → user, absolute expiry in epoch ms
- images: uploaded image paths per user

BaaS records (templates, reviews, notifications, BaaS users) never
live here.
"""

from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """A local username/password account.

    Learn: Created at signup and never updated or deleted by the app.
    `password_hash` maps to the historical `password` column.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column("password", Text, nullable=False)

    sessions: Mapped[list["UserSession"]] = relationship(back_populates="user")
    images: Mapped[list["Image"]] = relationship(back_populates="user")


class UserSession(Base):
    """A login session. The id IS the bearer capability stored in the cookie.

    Learn: Valid only while expires_at > now (epoch milliseconds). Expired
    rows are not reaped; lookups simply ignore them.
    """

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        "userId", Integer, ForeignKey("users.id"), nullable=False
    )
    expires_at: Mapped[int] = mapped_column("expiresAt", BigInteger, nullable=False)

    user: Mapped["User"] = relationship(back_populates="sessions")


class Image(Base):
    """An uploaded image owned by a local user."""

    __tablename__ = "images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        "userId", Integer, ForeignKey("users.id"), nullable=False
    )
    image_path: Mapped[Optional[str]] = mapped_column("imagePath", Text)

    user: Mapped["User"] = relationship(back_populates="images")
