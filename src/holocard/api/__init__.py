"""Route aggregation.

All routers registered here get mounted in main.py.

Learn: No router-level auth dependency here. Every request already
carries request.state.user (set by CurrentUserMiddleware); pages opt in
to protection through the guards in auth.guard.
"""

from fastapi import APIRouter

from holocard.api.auth import router as auth_router
from holocard.api.health import router as health_router
from holocard.api.oauth import router as oauth_router
from holocard.api.pages import router as pages_router
from holocard.api.uploads import router as uploads_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(oauth_router, tags=["auth", "oauth"])
api_router.include_router(pages_router, tags=["pages"])
api_router.include_router(uploads_router, tags=["uploads"])
