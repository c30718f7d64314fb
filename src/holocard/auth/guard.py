"""Auth guards for page loaders.

Learn: A page loader is any callable `loader(request, user)` returning
the page's data (sync or async). The guards wrap it into a FastAPI
dependency:

    load_collections = require_auth()

    @router.get("/collections")
    async def collections(data: dict = Depends(load_collections)):
        return data

require_auth redirects anonymous visitors to the sign-in page with
`redirectTo` set to the path + query they asked for, encoded exactly
once the way JavaScript's encodeURIComponent does it, so
`/collections?tab=owned` becomes
`/auth/signin?redirectTo=%2Fcollections%3Ftab%3Downed`.

optional_auth never redirects; the loader just sees `user=None`.
"""

import inspect
from typing import Any, Awaitable, Callable, Optional, Union
from urllib.parse import quote

from fastapi import Request

from holocard.auth.models import CurrentUser
from holocard.errors import AuthRedirect

Loader = Callable[[Request, Any], Union[Any, Awaitable[Any]]]

# Characters encodeURIComponent leaves alone besides [A-Za-z0-9].
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def get_auth_user(request: Request) -> Optional[CurrentUser]:
    """The resolved user for this request, or None. Never redirects."""
    return getattr(request.state, "user", None)


def original_destination(request: Request) -> str:
    """pathname + search of the incoming request, as the client sent them."""
    raw_path = request.scope.get("raw_path")
    if raw_path:
        path = raw_path.partition(b"?")[0].decode("latin-1")
    else:
        path = request.url.path
    query = request.url.query
    return f"{path}?{query}" if query else path


def safe_redirect_target(value: Optional[str]) -> str:
    """Only same-site relative paths are valid post-login destinations."""
    if not value or not value.startswith("/") or value.startswith("//") or "\\" in value:
        return "/"
    return value


def signin_redirect_url(request: Request, signin_path: str) -> str:
    return f"{signin_path}?redirectTo={encode_uri_component(original_destination(request))}"


async def _call(loader: Loader, request: Request, user: Any) -> Any:
    result = loader(request, user)
    if inspect.isawaitable(result):
        result = await result
    return result


def require_auth(loader: Optional[Loader] = None):
    """Wrap a page loader so it only runs for signed-in users."""

    async def load(request: Request) -> Any:
        user = get_auth_user(request)
        if user is None:
            signin_path = request.app.state.settings.signin_path
            raise AuthRedirect(signin_redirect_url(request, signin_path), status_code=302)

        if loader is not None:
            return await _call(loader, request, user)
        return {"user": user.to_dict()}

    return load


def optional_auth(loader: Optional[Loader] = None):
    """Wrap a page loader that works with or without a signed-in user."""

    async def load(request: Request) -> Any:
        user = get_auth_user(request)

        if loader is not None:
            return await _call(loader, request, user)
        return {"user": user.to_dict() if user else None}

    return load
