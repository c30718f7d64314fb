"""Request hook — resolve the current user once per request.

Learn: Runs the configured UserResolver before the route handler and
stores the result on request.state.user (None when anonymous). Handlers
and guards read it from there; they never touch cookies themselves.
Nothing here rejects a request: deciding what anonymous users may see
is the guards' job.

The resolved user is also bound to the structlog context, so handler log
lines carry user_id and provider without passing them around.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class CurrentUserMiddleware(BaseHTTPMiddleware):
    """Attach request.state.user from app.state.user_resolver."""

    async def dispatch(self, request: Request, call_next) -> Response:
        resolver = request.app.state.user_resolver
        user = await resolver.resolve(request)
        request.state.user = user
        if user is not None:
            structlog.contextvars.bind_contextvars(user_id=user.id, provider=user.provider)

        response: Response = await call_next(request)
        await resolver.finalize(request, response)
        return response
