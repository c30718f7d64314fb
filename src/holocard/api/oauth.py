"""GitHub sign-in routes (federated backend).

Learn: Classic OAuth web flow with a CSRF `state`:
- GET /auth/signin/github → random state in a short-lived cookie,
  redirect to GitHub's authorize page
- GET /auth/callback/github → state must match the cookie, then
  code → access token → /user → sign_in → jwt → signed cookie

Any failure on the way back lands on the sign-in page (303) rather
than an error page; details only go to the log.
"""

import secrets
from typing import Optional

import httpx
import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from holocard.api.deps import get_callbacks, get_github, get_settings
from holocard.auth.cookies import clear_lax_cookie, set_lax_cookie
from holocard.auth.federated import (
    FederatedCallbacks,
    GitHubOAuth,
    OAuthError,
    initial_token,
    profile_to_user,
)
from holocard.auth.guard import safe_redirect_target
from holocard.auth.jwt import create_session_token
from holocard.config import Settings
from holocard.errors import AppError

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")

STATE_COOKIE = "holocard_oauth_state"
REDIRECT_COOKIE = "holocard_oauth_redirect"
STATE_MAX_AGE = 10 * 60


def _callback_uri(settings: Settings) -> str:
    return f"{settings.public_base_url.rstrip('/')}/auth/callback/github"


def _clear_flow_cookies(response: RedirectResponse, settings: Settings) -> None:
    clear_lax_cookie(response, settings, key=STATE_COOKIE)
    clear_lax_cookie(response, settings, key=REDIRECT_COOKIE)


def _back_to_signin(settings: Settings) -> RedirectResponse:
    response = RedirectResponse(url=settings.signin_path, status_code=303)
    _clear_flow_cookies(response, settings)
    return response


@router.get("/signin/github")
async def github_signin(
    redirect_to: str = Query("/", alias="redirectTo"),
    settings: Settings = Depends(get_settings),
    github: GitHubOAuth = Depends(get_github),
):
    """Start the GitHub OAuth flow."""
    if not github.configured:
        raise AppError(
            "GitHub sign-in is not configured",
            code="auth/oauth-failed",
            status_code=503,
        )

    state = secrets.token_urlsafe(32)
    response = RedirectResponse(
        url=github.authorize_url(_callback_uri(settings), state),
        status_code=302,
    )
    set_lax_cookie(response, settings, STATE_COOKIE, state, STATE_MAX_AGE)
    set_lax_cookie(
        response, settings, REDIRECT_COOKIE, safe_redirect_target(redirect_to), STATE_MAX_AGE
    )
    return response


@router.get("/callback/github")
async def github_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    github: GitHubOAuth = Depends(get_github),
    callbacks: FederatedCallbacks = Depends(get_callbacks),
):
    """Finish the GitHub OAuth flow and set the federated session cookie."""
    expected_state = request.cookies.get(STATE_COOKIE)
    if not code or not state or not expected_state or not secrets.compare_digest(
        state, expected_state
    ):
        logger.warning("auth.oauth_state_mismatch")
        return _back_to_signin(settings)

    try:
        access_token = await github.exchange_code(code, _callback_uri(settings))
        profile = await github.fetch_profile(access_token)
    except (OAuthError, httpx.HTTPError) as e:
        logger.warning("auth.oauth_failed", provider="github", error=str(e))
        return _back_to_signin(settings)

    user = profile_to_user(profile)
    account = {
        "provider": "github",
        "type": "oauth",
        "providerAccountId": str(profile["id"]),
    }
    if not callbacks.sign_in(user, account=account, profile=profile):
        logger.info("auth.oauth_sign_in_denied", user_id=user["id"])
        return _back_to_signin(settings)

    token = callbacks.jwt(initial_token(user), user=user, account=account)
    target = safe_redirect_target(request.cookies.get(REDIRECT_COOKIE))

    response = RedirectResponse(url=target, status_code=303)
    set_lax_cookie(
        response,
        settings,
        settings.federated_cookie_name,
        create_session_token(token, settings),
        settings.session_ttl_seconds,
    )
    _clear_flow_cookies(response, settings)
    return response
