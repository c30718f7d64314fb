"""Test fixtures — a fresh app and in-memory SQLite database per test.

Learn: Testing pattern for the app factory:

1. Each test builds its own app via create_app() with an in-memory
   SQLite URL (StaticPool keeps the one connection alive), so no data
   leaks between tests and no rollback tricks are needed.
2. httpx's ASGITransport doesn't run the lifespan, so fixtures create
   the tables themselves with init_models().
3. External services (PocketBase, GitHub) are injected as clients
   backed by httpx.MockTransport. No network, no mocks of our own code.

bcrypt runs at its minimum cost (4 rounds) to keep tests fast.
"""

from contextlib import asynccontextmanager
from typing import Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from holocard.config import Settings
from holocard.db.engine import init_models
from holocard.main import create_app


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite://",
        "environment": "test",
        "jwt_secret": "test-secret-not-for-production",
        "bcrypt_rounds": 4,
        "upload_dir": str(tmp_path / "uploads"),
        "redis_url": "",
    }
    values.update(overrides)
    return Settings(**values)


@pytest_asyncio.fixture()
async def app_factory(tmp_path):
    """Build apps with setting overrides; everything is disposed after the test."""
    created = []

    async def _make(pocketbase=None, github=None, **overrides):
        app = create_app(
            make_settings(tmp_path, **overrides),
            pocketbase=pocketbase,
            github=github,
        )
        await init_models(app.state.engine)
        created.append(app)
        return app

    yield _make

    for app in created:
        await app.state.pocketbase.aclose()
        await app.state.github.aclose()
        await app.state.engine.dispose()


@pytest_asyncio.fixture()
async def app(app_factory):
    """Default app: local session backend."""
    return await app_factory()


@asynccontextmanager
async def client_for(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client for the default app (keeps cookies between requests)."""
    async with client_for(app) as ac:
        yield ac


async def signup(client: AsyncClient, username: str, password: str):
    return await client.post(
        "/auth/signup", data={"username": username, "password": password}
    )


async def login(client: AsyncClient, username: str, password: str):
    return await client.post(
        "/auth/login", data={"username": username, "password": password}
    )


async def signed_in(client: AsyncClient, username: str = "alice", password: str = "s3cret-pass") -> Optional[str]:
    """Sign up + log in; returns the session id the server issued."""
    await signup(client, username, password)
    r = await login(client, username, password)
    assert r.status_code == 303
    return r.cookies.get("session_id")
