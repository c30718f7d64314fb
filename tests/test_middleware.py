"""Tests for middleware — security headers, request IDs, rate limiting.

Learn: Rate limiting is skipped when there's no Redis, so the limiter
tests park a tiny in-memory stand-in on app.state.redis. It only has
the two commands the limiter uses.
"""

import pytest

from conftest import client_for, login


class FakeRedis:
    def __init__(self):
        self.counts = {}
        self.ttls = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        self.ttls[key] = seconds

    async def ping(self):
        return True


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


@pytest.mark.asyncio
async def test_security_headers_on_redirects(client):
    r = await client.get("/collections")
    assert r.status_code == 302
    assert r.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/health")
    r2 = await client.get("/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_hsts_on_https(app):
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as ac:
        r = await ac.get("/health")
    assert r.headers["Strict-Transport-Security"].startswith("max-age=31536000")


# ═══════════════════════════════════════════════════════════
# Rate limiting
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_no_rate_limit_headers_without_redis(client):
    r = await client.get("/health")
    assert "X-RateLimit-Limit" not in r.headers


@pytest.mark.asyncio
async def test_login_is_rate_limited(app_factory):
    app = await app_factory(rate_limit_auth_rpm=2)
    app.state.redis = FakeRedis()

    async with client_for(app) as client:
        first = await login(client, "alice", "guess-1")
        second = await login(client, "alice", "guess-2")
        third = await login(client, "alice", "guess-3")

    assert first.status_code == second.status_code == 401
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert second.headers["X-RateLimit-Remaining"] == "0"
    assert third.status_code == 429
    assert third.json() == {"error": "Too many requests. Try again later."}
    assert third.headers["Retry-After"] == "60"


@pytest.mark.asyncio
async def test_pages_use_separate_budget(app_factory):
    app = await app_factory(rate_limit_auth_rpm=1, rate_limit_rpm=50)
    redis = FakeRedis()
    app.state.redis = redis

    async with client_for(app) as client:
        await login(client, "alice", "guess-1")
        blocked = await login(client, "alice", "guess-2")
        page = await client.get("/")

    assert blocked.status_code == 429
    assert page.status_code == 200
    assert page.headers["X-RateLimit-Limit"] == "50"
    assert all(ttl == 120 for ttl in redis.ttls.values())


@pytest.mark.asyncio
async def test_redis_errors_let_requests_through(app_factory):
    class BrokenRedis:
        async def incr(self, key):
            raise ConnectionError("redis went away")

    app = await app_factory()
    app.state.redis = BrokenRedis()

    async with client_for(app) as client:
        r = await client.get("/")
    assert r.status_code == 200


# ═══════════════════════════════════════════════════════════
# Caching + log context
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_auth_responses_are_not_stored(client):
    r = await client.get("/auth/me")
    assert r.headers["Cache-Control"] == "no-store"


@pytest.mark.asyncio
async def test_signed_in_pages_are_not_stored(client):
    from conftest import signed_in

    anonymous = await client.get("/")
    assert "Cache-Control" not in anonymous.headers

    await signed_in(client)
    r = await client.get("/")
    assert r.headers["Cache-Control"] == "no-store"
    assert "Cache-Control" not in (await client.get("/health")).headers


@pytest.mark.asyncio
async def test_log_context_carries_backend_and_user(client, monkeypatch):
    import structlog

    from conftest import signed_in

    bound = {}
    real_bind = structlog.contextvars.bind_contextvars

    def recording_bind(**kwargs):
        bound.update(kwargs)
        return real_bind(**kwargs)

    await signed_in(client, "lena", "pw-lena")
    monkeypatch.setattr(structlog.contextvars, "bind_contextvars", recording_bind)

    r = await client.get("/auth/me", headers={"X-Request-ID": "trace-me"})
    assert r.status_code == 200
    assert bound["request_id"] == "trace-me"
    assert bound["auth_backend"] == "local"
    assert bound["user_id"] == r.json()["id"]
    assert bound["provider"] == "local"
