"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with HOLOCARD_ prefix.
No config files, just env vars (12-factor app style).

Learn: The auth backend is picked here, once per process. Everything
downstream asks the configured resolver "who is this request?" and never
cares which of the three sign-in mechanisms answered.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings

AuthBackend = Literal["local", "federated", "pocketbase"]


class Settings(BaseSettings):
    """All app configuration. Set via HOLOCARD_* env vars."""

    # Database (local users/sessions/images tables)
    database_url: str = "sqlite+aiosqlite:///./database.db"

    # Redis (optional; rate limiting is skipped without it)
    redis_url: str = ""

    # Auth
    auth_backend: AuthBackend = "local"
    session_cookie_name: str = "session_id"
    session_ttl_days: int = 7
    bcrypt_rounds: int = 10
    signin_path: str = "/auth/signin"
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    federated_cookie_name: str = "holocard_token"

    # GitHub OAuth (federated backend)
    github_client_id: str = ""
    github_client_secret: str = ""
    public_base_url: str = "http://localhost:8000"

    # PocketBase (BaaS backend)
    pocketbase_url: str = "http://localhost:8090"
    pocketbase_cookie_name: str = "pb_auth"
    pocketbase_cookie_max_age: int = 60 * 60 * 24  # 24 hours

    # Uploads
    upload_dir: str = "static/uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_image_types: list[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
    ]

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
    ]

    # Rate limiting
    rate_limit_rpm: int = 100  # requests per minute per IP
    rate_limit_auth_rpm: int = 10  # stricter limit for login/signup

    model_config = {"env_prefix": "HOLOCARD_"}

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_days * 24 * 60 * 60

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if (
            self.environment not in ("development", "test")
            and self.jwt_secret == "change-me-in-production"
        ):
            raise ValueError(
                "HOLOCARD_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Process-wide defaults. create_app() accepts an explicit Settings instead.
settings = Settings()
