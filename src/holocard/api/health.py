"""Health check endpoint.

Simple GET endpoint that verifies the server is running and its
dependencies (local database, Redis if configured) are reachable.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from holocard import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    state = request.app.state
    checks = {
        "server": "ok",
        "version": __version__,
        "auth_backend": state.settings.auth_backend,
    }

    try:
        async with state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    if state.redis is not None:
        try:
            await state.redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"
    else:
        checks["redis"] = "disabled"

    status = "healthy" if all(
        checks[k] in ("ok", "disabled") for k in ("server", "database", "redis")
    ) else "degraded"

    return {"status": status, **checks}
