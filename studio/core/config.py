"""
Application configuration settings.
"""

import json
import os

from pydantic_settings import BaseSettings

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:8000"]


def parse_origins(raw: str | None) -> list[str]:
    """
    Read a list of CORS origins from an environment value.

    Accepts a JSON list, an unquoted or single-quoted bracket list as often
    found in .env files, a comma-separated list, or a single origin.
    """
    raw = (raw or "").strip()
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)

    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return [str(origin).strip() for origin in parsed if origin]

    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1]
    origins = [part.strip().strip("'\"") for part in raw.split(",")]
    return [origin for origin in origins if origin] or list(DEFAULT_CORS_ORIGINS)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    PROJECT_NAME: str = "Writing Studio API"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "local")

    # Auth
    SECRET_KEY: str = os.getenv("SECRET_KEY", "local-dev-secret-key-not-for-production")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    MIN_PASSWORD_LENGTH: int = 6
    # Serve every request as a development user, no token needed
    AUTH_DISABLED: bool = os.getenv("AUTH_DISABLED", "false").lower() == "true"

    # Any SQLAlchemy URL; SQLite file by default
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./studio.db")

    # One JSON file per user: last book, last chapter, editor settings
    PREFERENCES_DIR: str = os.getenv("PREFERENCES_DIR", "./.studio/preferences")

    # Page fragments come from the package unless a directory or base URL is set
    PAGES_DIR: str | None = os.getenv("PAGES_DIR")
    PAGES_BASE_URL: str | None = os.getenv("PAGES_BASE_URL")

    DEFAULT_ROUTE: str = "editor"
    AUTOSAVE_DEBOUNCE_SECONDS: float = 3.0
    AUTOSAVE_INTERVAL_SECONDS: float = 30.0

    @property
    def BACKEND_CORS_ORIGINS(self) -> list[str]:
        return parse_origins(os.getenv("BACKEND_CORS_ORIGINS"))

    class Config:
        case_sensitive = True
        env_file = ".env"
        extra = "ignore"


settings = Settings()
