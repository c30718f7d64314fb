"""Federated (GitHub) sign-in tests.

Learn: GitHub is never contacted. The GitHubOAuth client gets an
httpx.AsyncClient backed by MockTransport, which answers the token
exchange and /user calls the way GitHub does.
"""

import httpx
import pytest

from conftest import client_for
from holocard.auth.federated import (
    GITHUB_AUTHORIZE_URL,
    FederatedCallbacks,
    GitHubOAuth,
    initial_token,
    profile_to_user,
)
from holocard.auth.jwt import create_session_token

PROFILE = {
    "id": 583231,
    "login": "octocat",
    "name": "The Octocat",
    "email": "octocat@github.example",
    "avatar_url": "https://avatars.example/u/583231",
}


def _github_handler(token_response=None, profile=PROFILE):
    token_response = token_response or {"access_token": "gho_test", "token_type": "bearer"}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "github.com" and request.url.path == "/login/oauth/access_token":
            return httpx.Response(200, json=token_response)
        if request.url.host == "api.github.com" and request.url.path == "/user":
            assert request.headers["Authorization"] == "Bearer gho_test"
            return httpx.Response(200, json=profile)
        return httpx.Response(404, json={"message": "Not Found"})

    return handler


def _github(handler) -> GitHubOAuth:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubOAuth("client-id", "client-secret", http=http)


@pytest.fixture
def federated_app(app_factory):
    async def _make(handler=None):
        return await app_factory(
            auth_backend="federated",
            github=_github(handler or _github_handler()),
        )
    return _make


# ═══════════════════════════════════════════════════════════
# Callback chain
# ═══════════════════════════════════════════════════════════


def test_sign_in_always_approves():
    callbacks = FederatedCallbacks()
    assert callbacks.sign_in({"id": 1}, account={"provider": "github"}) is True


def test_jwt_copies_user_id_on_first_issue():
    callbacks = FederatedCallbacks()
    token = callbacks.jwt({"name": "The Octocat"}, user={"id": 583231})
    assert token == {"name": "The Octocat", "sub": "583231"}


def test_jwt_renewal_passes_token_through():
    callbacks = FederatedCallbacks()
    token = {"sub": "583231", "name": "The Octocat"}
    assert callbacks.jwt(token) == token


def test_session_projects_sub_onto_user_id():
    callbacks = FederatedCallbacks()
    session = callbacks.session(
        {"user": {"name": "The Octocat"}, "expires": "2030-01-01"},
        {"sub": "583231"},
    )
    assert session["user"] == {"name": "The Octocat", "id": "583231"}
    assert session["expires"] == "2030-01-01"


def test_profile_to_user_falls_back_to_login():
    user = profile_to_user({"id": 7, "login": "nameless"})
    assert user["name"] == "nameless"
    assert initial_token(user)["login"] == "nameless"


# ═══════════════════════════════════════════════════════════
# OAuth flow
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signin_redirects_to_github(federated_app):
    app = await federated_app()
    async with client_for(app) as client:
        r = await client.get("/auth/signin/github", params={"redirectTo": "/collections"})

    assert r.status_code == 302
    location = httpx.URL(r.headers["location"])
    assert str(location).startswith(GITHUB_AUTHORIZE_URL)
    assert location.params["client_id"] == "client-id"
    assert location.params["redirect_uri"] == "http://localhost:8000/auth/callback/github"
    assert location.params["state"] == r.cookies["holocard_oauth_state"]


@pytest.mark.asyncio
async def test_signin_not_configured(app_factory):
    app = await app_factory(auth_backend="federated")
    async with client_for(app) as client:
        r = await client.get("/auth/signin/github")
    assert r.status_code == 503
    assert r.json()["code"] == "auth/oauth-failed"


@pytest.mark.asyncio
async def test_full_flow_signs_user_in(federated_app):
    """signin → callback → cookie → /auth/me resolves the GitHub user."""
    app = await federated_app()
    async with client_for(app) as client:
        start = await client.get(
            "/auth/signin/github", params={"redirectTo": "/collections?tab=owned"}
        )
        state = httpx.URL(start.headers["location"]).params["state"]

        r = await client.get("/auth/callback/github", params={"code": "abc", "state": state})
        assert r.status_code == 303
        assert r.headers["location"] == "/collections?tab=owned"
        assert r.cookies.get("holocard_token")

        me = await client.get("/auth/me")
        assert me.status_code == 200
        body = me.json()
        assert body["id"] == "583231"
        assert body["provider"] == "github"
        assert body["username"] == "octocat"
        assert body["name"] == "The Octocat"
        assert body["picture"] == PROFILE["avatar_url"]

        page = await client.get("/collections")
        assert page.status_code == 200


@pytest.mark.asyncio
async def test_callback_state_mismatch(federated_app):
    app = await federated_app()
    async with client_for(app) as client:
        await client.get("/auth/signin/github")
        r = await client.get("/auth/callback/github", params={"code": "abc", "state": "forged"})

    assert r.status_code == 303
    assert r.headers["location"] == "/auth/signin"
    assert "holocard_token" not in r.cookies


@pytest.mark.asyncio
async def test_callback_without_state_cookie(federated_app):
    app = await federated_app()
    async with client_for(app) as client:
        r = await client.get("/auth/callback/github", params={"code": "abc", "state": "x"})
    assert r.status_code == 303
    assert r.headers["location"] == "/auth/signin"


@pytest.mark.asyncio
async def test_callback_rejected_code(federated_app):
    """GitHub answers 200 with an error body for a bad code."""
    handler = _github_handler(token_response={"error": "bad_verification_code"})
    app = await federated_app(handler)
    async with client_for(app) as client:
        start = await client.get("/auth/signin/github")
        state = httpx.URL(start.headers["location"]).params["state"]
        r = await client.get("/auth/callback/github", params={"code": "stale", "state": state})

        assert r.status_code == 303
        assert r.headers["location"] == "/auth/signin"
        assert (await client.get("/auth/me")).status_code == 401


# ═══════════════════════════════════════════════════════════
# Token cookie resolution
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_token_cookie_resolves_user(federated_app):
    app = await federated_app()
    token = create_session_token({"sub": "42", "login": "hubot"}, app.state.settings)

    async with client_for(app) as client:
        r = await client.get("/auth/me", headers={"Cookie": f"holocard_token={token}"})
    assert r.status_code == 200
    assert r.json()["id"] == "42"
    assert r.json()["username"] == "hubot"


@pytest.mark.asyncio
async def test_tampered_token_is_anonymous(federated_app):
    app = await federated_app()
    token = create_session_token({"sub": "42"}, app.state.settings)
    tampered = token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB")

    async with client_for(app) as client:
        r = await client.get("/auth/me", headers={"Cookie": f"holocard_token={tampered}"})
        page = await client.get("/create", headers={"Cookie": f"holocard_token={tampered}"})
    assert r.status_code == 401
    assert page.status_code == 302


@pytest.mark.asyncio
async def test_token_from_other_secret_is_anonymous(federated_app, tmp_path):
    from conftest import make_settings

    app = await federated_app()
    other = make_settings(tmp_path, jwt_secret="someone-elses-secret")
    token = create_session_token({"sub": "42"}, other)

    async with client_for(app) as client:
        r = await client.get("/auth/me", headers={"Cookie": f"holocard_token={token}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_is_anonymous(federated_app):
    app = await federated_app()
    token = create_session_token({"sub": "42"}, app.state.settings, expires_seconds=-10)

    async with client_for(app) as client:
        r = await client.get("/auth/me", headers={"Cookie": f"holocard_token={token}"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_signin_options_federated(federated_app):
    app = await federated_app()
    async with client_for(app) as client:
        r = await client.get("/auth/signin", params={"redirectTo": "/collections"})
    assert r.json()["methods"] == [
        {
            "type": "oauth2",
            "provider": "github",
            "url": "/auth/signin/github?redirectTo=%2Fcollections",
        }
    ]


@pytest.mark.asyncio
async def test_logout_clears_federated_cookie(federated_app):
    app = await federated_app()
    token = create_session_token({"sub": "42"}, app.state.settings)

    async with client_for(app) as client:
        r = await client.get("/auth/logout", headers={"Cookie": f"holocard_token={token}"})
    assert r.status_code == 303
    assert "holocard_token=" in r.headers["set-cookie"]
    assert "max-age=0" in r.headers["set-cookie"].lower()
