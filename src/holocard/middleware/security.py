"""Security headers middleware.

Every response gets nosniff, frame denial and a referrer policy. Pages
and auth responses depend on the caller's cookies, so anything under
the auth routes, or sent to a signed-in user, is marked `no-store` to
keep shared caches from replaying it. Uploaded images are public and
stay cacheable. HSTS is only sent over HTTPS.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

PUBLIC_PREFIXES = ("/uploads/", "/health")

BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def _is_private(request: Request) -> bool:
    if request.url.path.startswith(PUBLIC_PREFIXES):
        return False
    return request.url.path.startswith("/auth/") or getattr(request.state, "user", None) is not None


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security and caching headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        for name, value in BASE_HEADERS.items():
            response.headers[name] = value
        if _is_private(request):
            response.headers["Cache-Control"] = "no-store"
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response
