"""Federated (GitHub) sign-in: callback chain + OAuth client.

Learn: Sign-in runs three small data-shaping callbacks, in order:

1. sign_in(user, account, profile) → bool: may veto. Currently always
   approves and just logs the attempt.
2. jwt(token, user=None) → token: on first issuance (user given) copies
   the provider's user id into token["sub"]. On renewal (no user) the
   token passes through untouched.
3. session(session, token) → session: projects token["sub"] onto
   session["user"]["id"], the shape the rest of the app reads.

GitHubOAuth does the HTTP side: authorize URL, code→access-token
exchange, and fetching /user.
"""

from typing import Any, Optional
from urllib.parse import urlencode

import httpx
import structlog

logger = structlog.get_logger()

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_API_URL = "https://api.github.com"
GITHUB_SCOPE = "read:user user:email"


class OAuthError(Exception):
    """Raised when the provider rejects the code exchange or profile fetch."""


class FederatedCallbacks:
    """The sign_in → jwt → session callback chain."""

    def sign_in(
        self,
        user: dict[str, Any],
        account: Optional[dict[str, Any]] = None,
        profile: Optional[dict[str, Any]] = None,
    ) -> bool:
        logger.info(
            "federated.sign_in",
            provider=(account or {}).get("provider"),
            user_id=user.get("id"),
        )
        return True

    def jwt(
        self,
        token: dict[str, Any],
        user: Optional[dict[str, Any]] = None,
        account: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        if user is not None:
            token = {**token, "sub": str(user["id"])}
        return token

    def session(self, session: dict[str, Any], token: dict[str, Any]) -> dict[str, Any]:
        user = {**(session.get("user") or {}), "id": token.get("sub")}
        return {**session, "user": user}


def profile_to_user(profile: dict[str, Any]) -> dict[str, Any]:
    """Normalize a GitHub /user payload into the callback `user` shape."""
    return {
        "id": profile["id"],
        "name": profile.get("name") or profile.get("login"),
        "email": profile.get("email"),
        "image": profile.get("avatar_url"),
        "login": profile.get("login"),
    }


def initial_token(user: dict[str, Any]) -> dict[str, Any]:
    """Token claims before the jwt callback runs (no subject yet)."""
    return {
        "name": user.get("name"),
        "email": user.get("email"),
        "picture": user.get("image"),
        "login": user.get("login"),
    }


class GitHubOAuth:
    """GitHub OAuth web flow."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self._http = http or httpx.AsyncClient()

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    async def aclose(self) -> None:
        await self._http.aclose()

    def authorize_url(self, redirect_uri: str, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": GITHUB_SCOPE,
            "state": state,
        })
        return f"{GITHUB_AUTHORIZE_URL}?{query}"

    async def exchange_code(self, code: str, redirect_uri: str) -> str:
        """Trade the authorization code for an access token."""
        resp = await self._http.post(
            GITHUB_TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            },
            headers={"Accept": "application/json"},
        )
        if resp.status_code >= 400:
            raise OAuthError(f"Token exchange failed: HTTP {resp.status_code}")
        data = resp.json()
        access_token = data.get("access_token")
        if not access_token:
            raise OAuthError(data.get("error_description") or data.get("error") or "No access token")
        return access_token

    async def fetch_profile(self, access_token: str) -> dict[str, Any]:
        resp = await self._http.get(
            f"{GITHUB_API_URL}/user",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/vnd.github+json",
            },
        )
        if resp.status_code >= 400:
            raise OAuthError(f"Profile fetch failed: HTTP {resp.status_code}")
        return resp.json()
