"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance with everything it needs constructed up front and stored on
app.state: settings, DB engine + session factory, the PocketBase and
GitHub clients, the federated callbacks, and the ONE user resolver for
the configured auth backend. Lifespan only handles things that need an
event loop (schema creation, Redis, closing clients).
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from holocard import __version__
from holocard.api import api_router
from holocard.auth.federated import FederatedCallbacks, GitHubOAuth
from holocard.auth.middleware import CurrentUserMiddleware
from holocard.auth.resolvers import build_resolver
from holocard.cache import close_redis, connect_redis
from holocard.config import Settings
from holocard.db.engine import build_engine, build_session_factory, init_models
from holocard.errors import register_error_handlers
from holocard.middleware.rate_limit import RateLimitMiddleware
from holocard.middleware.request_id import RequestIdMiddleware
from holocard.middleware.security import SecurityHeadersMiddleware
from holocard.pocketbase.client import PocketBaseClient

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "holocard.starting",
        version=__version__,
        environment=settings.environment,
        auth_backend=settings.auth_backend,
    )

    await init_models(app.state.engine)
    app.state.redis = await connect_redis(settings.redis_url)

    yield

    logger.info("holocard.shutdown")
    await close_redis(app.state.redis)
    app.state.redis = None
    await app.state.pocketbase.aclose()
    await app.state.github.aclose()
    await app.state.engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    *,
    pocketbase: Optional[PocketBaseClient] = None,
    github: Optional[GitHubOAuth] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or Settings()

    app = FastAPI(
        title="HoloCard",
        description="Auth, sessions and image gallery for the holographic card app",
        version=__version__,
        lifespan=lifespan,
    )

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    pocketbase = pocketbase or PocketBaseClient(settings.pocketbase_url)
    github = github or GitHubOAuth(settings.github_client_id, settings.github_client_secret)
    callbacks = FederatedCallbacks()

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.pocketbase = pocketbase
    app.state.github = github
    app.state.callbacks = callbacks
    app.state.redis = None
    app.state.user_resolver = build_resolver(settings, session_factory, pocketbase, callbacks)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: RequestId → Security → RateLimit → CORS → CurrentUser → handler
    app.add_middleware(CurrentUserMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    register_error_handlers(app)
    app.include_router(api_router)

    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    return app
