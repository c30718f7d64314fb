"""FastAPI dependencies for the objects create_app() parks on app.state.

Learn: Route handlers never import clients or settings as module
globals. They ask for them with Depends(), which makes every one of
them swappable per app (and per test).
"""

from fastapi import Depends, Request

from holocard.auth.federated import FederatedCallbacks, GitHubOAuth
from holocard.auth.guard import get_auth_user
from holocard.auth.models import CurrentUser
from holocard.config import Settings
from holocard.errors import AppError
from holocard.pocketbase.client import PocketBaseClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pocketbase(request: Request) -> PocketBaseClient:
    return request.app.state.pocketbase


def get_github(request: Request) -> GitHubOAuth:
    return request.app.state.github


def get_callbacks(request: Request) -> FederatedCallbacks:
    return request.app.state.callbacks


def get_current_user(
    user: CurrentUser = Depends(get_auth_user),
) -> CurrentUser:
    """Resolved user (required — 401 if anonymous).

    For API-style endpoints. Pages use auth.guard.require_auth, which
    redirects instead.
    """
    if user is None:
        raise AppError("Authentication required", code="auth/unauthorized", status_code=401)
    return user
