"""Cookie attributes for the session cookies.

Learn: Every auth cookie is HttpOnly and Path=/, and Secure only in
production so local http:// development still works. The local session
cookie is SameSite=strict; cookies that must survive a cross-site
redirect back from an OAuth provider use lax.
"""

from fastapi import Response

from holocard.config import Settings


def set_session_cookie(response: Response, settings: Settings, session_id: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )


def set_lax_cookie(
    response: Response,
    settings: Settings,
    key: str,
    value: str,
    max_age: int,
) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def clear_lax_cookie(response: Response, settings: Settings, key: str) -> None:
    response.delete_cookie(
        key=key,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
