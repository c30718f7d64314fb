"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine, AsyncSession for
per-request database access, dependency injection via FastAPI.

Nothing here is a module-level singleton: create_app() builds the engine
and session factory and parks them on app.state, and get_db() reads them
back from the request. Tests build their own app against an in-memory
database and nothing leaks between them.
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from holocard.config import Settings
from holocard.db.models import Base


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url)


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the engine for settings.database_url.

    An in-memory SQLite database only exists for the lifetime of one
    connection, so it gets a StaticPool (every session shares the one
    connection).
    """
    url = settings.database_url
    if _is_memory_sqlite(url):
        return create_async_engine(
            url,
            echo=settings.debug,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(url, echo=settings.debug)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Each request gets its own session.
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create missing tables (CREATE TABLE IF NOT EXISTS semantics)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
