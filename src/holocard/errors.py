"""Application errors and their HTTP rendering.

Learn: Form actions in this app answer failures with a small
`{"error": "..."}` body instead of FastAPI's default `{"detail": ...}`.
Route handlers raise AppError subclasses; the handlers registered in
main.py turn them into that shape. Guard redirects travel as
AuthRedirect so a page loader can bail out from any depth.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse


class AppError(Exception):
    """An error that is safe to show to the client."""

    status_code = 400
    code = "app/error"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        field_errors: Optional[dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.field_errors = field_errors or {}

    def to_dict(self) -> dict:
        body: dict = {"error": self.message, "code": self.code}
        if self.field_errors:
            body["fields"] = self.field_errors
        return body


class ValidationFailed(AppError):
    status_code = 400
    code = "validation/invalid"


class AuthenticationFailed(AppError):
    status_code = 401
    code = "auth/invalid-credentials"


class Conflict(AppError):
    status_code = 409
    code = "validation/conflict"


class AuthRedirect(Exception):
    """Raised by page guards to send the browser somewhere else."""

    def __init__(self, location: str, status_code: int = 302):
        super().__init__(location)
        self.location = location
        self.status_code = status_code


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def auth_redirect_handler(request: Request, exc: AuthRedirect) -> RedirectResponse:
    return RedirectResponse(url=exc.location, status_code=exc.status_code)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(AuthRedirect, auth_redirect_handler)
