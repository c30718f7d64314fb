"""User resolvers — request → CurrentUser | None, one per auth backend.

Learn: This is the single session-of-truth abstraction. The app builds
exactly one resolver at startup (build_resolver) and the request hook
(auth.middleware) calls it for every request. Resolution never raises:
a missing cookie, an unknown or expired session, a bad signature or an
unreachable BaaS all come back as None, i.e. anonymous.

finalize() lets a backend touch the response on the way out. Only
PocketBase uses it, to re-export the refreshed auth cookie.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Optional
from urllib.parse import quote, unquote

import structlog
from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from holocard.auth.cookies import clear_lax_cookie, set_lax_cookie
from holocard.auth.federated import FederatedCallbacks
from holocard.auth.jwt import TokenError, verify_token
from holocard.auth.models import CurrentUser
from holocard.config import Settings
from holocard.pocketbase.client import PocketBaseClient, PocketBaseError
from holocard.services.session_service import SessionService

logger = structlog.get_logger()


class UserResolver(ABC):
    """Resolve the current user of a request."""

    name: str = ""

    @abstractmethod
    async def resolve(self, request: Request) -> Optional[CurrentUser]:
        ...

    async def finalize(self, request: Request, response: Response) -> None:
        return None


class LocalSessionResolver(UserResolver):
    """session_id cookie → sessions row → users row."""

    name = "local"

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self.settings = settings
        self.session_factory = session_factory

    async def resolve(self, request: Request) -> Optional[CurrentUser]:
        session_id = request.cookies.get(self.settings.session_cookie_name)
        if not session_id:
            return None

        try:
            async with self.session_factory() as db:
                service = SessionService(db, ttl=timedelta(days=self.settings.session_ttl_days))
                user = await service.resolve(session_id)
        except SQLAlchemyError as e:
            logger.warning("auth.session_lookup_failed", error=str(e))
            return None

        if user is None:
            return None
        return CurrentUser(id=user.id, provider="local", username=user.username)


class FederatedResolver(UserResolver):
    """Signed JWT cookie from GitHub sign-in → jwt() renewal → session()."""

    name = "federated"

    def __init__(self, settings: Settings, callbacks: FederatedCallbacks):
        self.settings = settings
        self.callbacks = callbacks

    async def resolve(self, request: Request) -> Optional[CurrentUser]:
        raw = request.cookies.get(self.settings.federated_cookie_name)
        if not raw:
            return None

        try:
            payload = verify_token(raw, self.settings)
        except TokenError as e:
            logger.debug("auth.federated_token_rejected", reason=str(e))
            return None

        token = self.callbacks.jwt(payload)
        session = self.callbacks.session(
            {
                "user": {
                    "name": token.get("name"),
                    "email": token.get("email"),
                    "image": token.get("picture"),
                }
            },
            token,
        )
        user = session["user"]
        if not user.get("id"):
            return None
        return CurrentUser(
            id=user["id"],
            provider="github",
            username=token.get("login"),
            email=user.get("email"),
            name=user.get("name"),
            picture=user.get("image"),
        )


# Fields kept when re-exporting the auth record into the cookie (4KB limit).
_COOKIE_RECORD_FIELDS = (
    "id",
    "collectionId",
    "collectionName",
    "username",
    "email",
    "name",
    "avatar",
    "verified",
)


def parse_pocketbase_cookie(value: Optional[str]) -> Optional[str]:
    """Extract the auth token from a pb_auth cookie ({token, model} JSON)."""
    if not value:
        return None
    try:
        data = json.loads(unquote(value))
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    token = data.get("token")
    return token if isinstance(token, str) and token else None


def export_pocketbase_cookie(token: str, record: dict[str, Any]) -> str:
    model = {k: record[k] for k in _COOKIE_RECORD_FIELDS if k in record}
    raw = json.dumps({"token": token, "model": model}, separators=(",", ":"))
    return quote(raw, safe="")


class PocketBaseResolver(UserResolver):
    """pb_auth cookie → PocketBase auth-refresh → refreshed record."""

    name = "pocketbase"

    def __init__(self, settings: Settings, client: PocketBaseClient):
        self.settings = settings
        self.client = client

    async def resolve(self, request: Request) -> Optional[CurrentUser]:
        token = parse_pocketbase_cookie(
            request.cookies.get(self.settings.pocketbase_cookie_name)
        )
        if not token:
            return None

        try:
            new_token, record = await self.client.auth_refresh(token)
        except PocketBaseError as e:
            # Expired or revoked token: clear the auth state.
            logger.debug("auth.pocketbase_refresh_failed", status=e.status, error=e.message)
            request.state.pocketbase_cookie = ""
            return None

        request.state.pocketbase_cookie = export_pocketbase_cookie(new_token, record)
        return CurrentUser(
            id=record["id"],
            provider="pocketbase",
            username=record.get("username"),
            email=record.get("email"),
            name=record.get("name"),
            picture=record.get("avatar") or None,
        )

    async def finalize(self, request: Request, response: Response) -> None:
        value = getattr(request.state, "pocketbase_cookie", None)
        if value is None:
            return
        name = self.settings.pocketbase_cookie_name
        if value:
            set_lax_cookie(
                response,
                self.settings,
                key=name,
                value=value,
                max_age=self.settings.pocketbase_cookie_max_age,
            )
        else:
            clear_lax_cookie(response, self.settings, key=name)


def build_resolver(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    pocketbase: PocketBaseClient,
    callbacks: FederatedCallbacks,
) -> UserResolver:
    """Pick the resolver for settings.auth_backend."""
    if settings.auth_backend == "local":
        return LocalSessionResolver(settings, session_factory)
    if settings.auth_backend == "federated":
        return FederatedResolver(settings, callbacks)
    if settings.auth_backend == "pocketbase":
        return PocketBaseResolver(settings, pocketbase)
    raise ValueError(f"Unknown auth backend: {settings.auth_backend}")
