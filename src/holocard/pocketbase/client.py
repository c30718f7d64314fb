"""PocketBase REST client — just the auth calls this app needs.

Learn: One httpx.AsyncClient per process, built by create_app() and
closed in the lifespan. Every non-2xx answer becomes a PocketBaseError
carrying the status and PocketBase's {message, data} body, and
to_app_error() translates it into something safe to show a user.
"""

from typing import Any, Optional

import httpx

from holocard.errors import AppError

USERS = "users"

# A 2xx answer we can't read is reported as an upstream failure.
BAD_GATEWAY = 502
MALFORMED_RESPONSE = "Malformed PocketBase response"


class PocketBaseError(Exception):
    """A failed PocketBase call (HTTP error or transport failure)."""

    def __init__(self, status: int, message: str, data: Optional[dict] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.data = data or {}

    def to_app_error(self) -> AppError:
        """Translate to a client-facing error by HTTP status."""
        if self.status == 401:
            return AppError("Authentication required", code="auth/unauthorized", status_code=401)

        if self.status in (400, 422):
            field_errors = {}
            for field, err in (self.data.get("data") or {}).items():
                if isinstance(err, dict) and "message" in err:
                    field_errors[field] = str(err["message"])
            return AppError(
                "Invalid input",
                code="validation/invalid",
                status_code=400,
                field_errors=field_errors,
            )

        if self.status == 403:
            return AppError("Access denied", code="auth/forbidden", status_code=403)

        if self.status == 404:
            return AppError("Requested data not found", code="not-found", status_code=404)

        if self.status >= 500 or self.status == 0:
            return AppError(
                "Server error. Please try again later.",
                code="network/server-error",
                status_code=502,
            )

        return AppError(self.message or "Unknown error", code="network/unknown", status_code=400)


class PocketBaseClient:
    """Thin async wrapper over the PocketBase HTTP API."""

    def __init__(self, base_url: str, http: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._http = http or httpx.AsyncClient(base_url=self.base_url)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> dict:
        headers = kwargs.pop("headers", {})
        if token:
            headers["Authorization"] = token
        try:
            resp = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise PocketBaseError(0, f"PocketBase unreachable: {e}")

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise PocketBaseError(
                resp.status_code,
                str(body.get("message") or resp.reason_phrase),
                body,
            )

        try:
            data = resp.json()
        except ValueError:
            raise PocketBaseError(BAD_GATEWAY, MALFORMED_RESPONSE)
        if not isinstance(data, dict):
            raise PocketBaseError(BAD_GATEWAY, MALFORMED_RESPONSE)
        return data

    async def auth_refresh(self, token: str) -> tuple[str, dict]:
        """Refresh an auth token. Returns (new_token, user_record)."""
        data = await self._request(
            "POST",
            f"/api/collections/{USERS}/auth-refresh",
            token=token,
        )
        token, record = data.get("token"), data.get("record")
        if not isinstance(token, str) or not isinstance(record, dict) or "id" not in record:
            raise PocketBaseError(BAD_GATEWAY, MALFORMED_RESPONSE, data)
        return token, record

    async def list_auth_methods(self) -> dict:
        """OAuth2 providers (and password auth flag) offered for users."""
        return await self._request("GET", f"/api/collections/{USERS}/auth-methods")
