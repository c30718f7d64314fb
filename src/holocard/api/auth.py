"""Auth API — local signup/login/logout, sign-in options, current user.

Learn: Routes for the username/password flow:
- POST /auth/signup → create account → 303 /auth/login
- POST /auth/login → session row + session_id cookie → 303 /gallery
- GET /auth/logout → delete session row, clear cookie → 303 /auth/login
- GET /auth/signin → which sign-in methods this deployment offers
- GET /auth/me → the resolved user (any backend)

Failures answer {"error": "..."} with no redirect. Login uses one
message for "no such user" and "wrong password".
"""

from datetime import timedelta
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from holocard.api.deps import get_current_user, get_pocketbase, get_settings
from holocard.auth.cookies import clear_lax_cookie, clear_session_cookie, set_session_cookie
from holocard.auth.guard import encode_uri_component, safe_redirect_target
from holocard.auth.models import CurrentUser
from holocard.config import Settings
from holocard.db.engine import get_db
from holocard.errors import AppError, AuthenticationFailed, ValidationFailed
from holocard.pocketbase.client import PocketBaseClient, PocketBaseError
from holocard.services.session_service import SessionService
from holocard.services.user_service import UserService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")

LOGIN_PATH = "/auth/login"
AFTER_LOGIN_PATH = "/gallery"

MISSING_FIELDS = "Username and password are required"
INVALID_CREDENTIALS = "Invalid username or password"


def _require_fields(username: Optional[str], password: Optional[str]) -> None:
    if not username or not password:
        raise ValidationFailed(MISSING_FIELDS, code="validation/required")


# ─── Signup ──────────────────────────────────────────────


@router.post("/signup")
async def signup(
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create a local account. Duplicate usernames → 409, no new row."""
    _require_fields(username, password)

    await UserService(db, bcrypt_rounds=settings.bcrypt_rounds).create_user(
        username, password
    )
    return RedirectResponse(url=LOGIN_PATH, status_code=303)


# ─── Login ───────────────────────────────────────────────


@router.post("/login")
async def login(
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Check credentials, open a 7-day session, set the session cookie."""
    _require_fields(username, password)

    user = await UserService(db).authenticate(username, password)
    if user is None:
        logger.info("auth.login_failed", username=username)
        raise AuthenticationFailed(INVALID_CREDENTIALS)

    user_id = user.id
    sessions = SessionService(db, ttl=timedelta(days=settings.session_ttl_days))
    try:
        session = await sessions.create(user_id)
    except SQLAlchemyError as e:
        logger.warning("auth.session_create_failed", user_id=user_id, error=str(e))
        await db.rollback()
        raise AppError("An error occurred", code="storage/failed", status_code=500)

    response = RedirectResponse(url=AFTER_LOGIN_PATH, status_code=303)
    set_session_cookie(response, settings, session.id)
    return response


# ─── Logout ──────────────────────────────────────────────


@router.get("/logout")
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """End the session. Safe to call with no session at all."""
    response = RedirectResponse(url=LOGIN_PATH, status_code=303)

    session_id = request.cookies.get(settings.session_cookie_name)
    if session_id:
        try:
            await SessionService(db).delete(session_id)
        except SQLAlchemyError as e:
            # The cookie still goes; an orphaned row just expires.
            await db.rollback()
            logger.warning("auth.session_delete_failed", error=str(e))
        clear_session_cookie(response, settings)

    # Federated / BaaS sign-ins keep their state in their own cookies.
    for cookie in (settings.federated_cookie_name, settings.pocketbase_cookie_name):
        if cookie in request.cookies:
            clear_lax_cookie(response, settings, key=cookie)

    return response


# ─── Sign-in options ─────────────────────────────────────


@router.get("/signin")
async def signin_options(
    redirect_to: str = Query("/", alias="redirectTo"),
    settings: Settings = Depends(get_settings),
    pocketbase: PocketBaseClient = Depends(get_pocketbase),
):
    """Describe how to sign in under the configured auth backend."""
    target = safe_redirect_target(redirect_to)
    methods: list[dict] = []

    if settings.auth_backend == "local":
        methods.append({"type": "password", "login": LOGIN_PATH, "signup": "/auth/signup"})

    elif settings.auth_backend == "federated":
        methods.append({
            "type": "oauth2",
            "provider": "github",
            "url": f"/auth/signin/github?redirectTo={encode_uri_component(target)}",
        })

    elif settings.auth_backend == "pocketbase":
        try:
            auth_methods = await pocketbase.list_auth_methods()
        except PocketBaseError as e:
            logger.warning("auth.pocketbase_methods_failed", status=e.status)
            raise e.to_app_error()
        methods.extend(_pocketbase_methods(auth_methods))

    return {"backend": settings.auth_backend, "redirectTo": target, "methods": methods}


def _pocketbase_methods(auth_methods: dict) -> list[dict]:
    """Normalize both the old and new PocketBase auth-methods payloads."""
    methods = []
    password = auth_methods.get("password") or {}
    if (
        auth_methods.get("usernamePassword")
        or auth_methods.get("emailPassword")
        or password.get("enabled")
    ):
        methods.append({"type": "password"})

    providers = auth_methods.get("authProviders")
    if providers is None:
        providers = (auth_methods.get("oauth2") or {}).get("providers") or []
    for provider in providers:
        methods.append({
            "type": "oauth2",
            "provider": provider.get("name"),
            "displayName": provider.get("displayName") or provider.get("name"),
            "url": provider.get("authURL") or provider.get("authUrl"),
        })
    return methods


# ─── Current user ────────────────────────────────────────


@router.get("/me")
async def get_me(user: CurrentUser = Depends(get_current_user)):
    """The user the request resolved to, whichever backend signed them in."""
    return user.to_dict()
