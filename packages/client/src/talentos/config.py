"""Client configuration via environment variables.

Uses pydantic-settings to load config from env vars with TALENTOS_ prefix.
Endpoint paths are settings too, so a backend mounted under a different
prefix only needs env changes.
"""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All client configuration. Set via TALENTOS_* env vars."""

    # Backend
    api_url: str = "http://localhost:3001/api/v1"
    request_timeout: float = 30.0

    # Persisted session (access token, refresh token, user, org id)
    token_store_path: Path = Path.home() / ".talentos" / "session.json"

    # Where the user is sent when the session can't be recovered
    login_view: str = "/login"

    # Auth service endpoints (relative to api_url)
    login_path: str = "/auth/login"
    refresh_path: str = "/auth/refresh"
    logout_path: str = "/auth/logout"
    me_path: str = "/auth/me"
    default_org_path: str = "/public/default-organization"

    model_config = {"env_prefix": "TALENTOS_"}

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("TALENTOS_API_URL must be an http(s) URL")
        return v.rstrip("/")


# Singleton — import this everywhere
settings = Settings()
