"""
RecipeBox Backend — Application Configuration
===============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and exposes a default `settings` object.
Who:   Imported by the application factory; tests build their own Settings.
When:  Loaded once at module import time; validated during startup.

Design Decision:
    Settings are passed explicitly into create_app() and down to the
    database layer. The module-level `settings` instance is only the default
    used when uvicorn imports `recipebox.main:app`.
"""

from typing import List, Optional

from fastapi import Request
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

DEFAULT_SESSION_SECRET = "recipebox-dev-secret-change-me"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    Production deployments MUST override SESSION_SECRET and DATABASE_URL.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///./file.db  or  postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./recipebox.db",
        description="Async SQLAlchemy connection URL",
    )

    # Pool sizing only applies to server databases (ignored for SQLite)
    db_pool_size: int = Field(default=20, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # Create missing tables at startup (development / single-file SQLite)
    db_create_tables: bool = Field(default=True)

    # Upper bound for a single statement, in seconds
    query_timeout_seconds: float = Field(default=10.0, gt=0, le=300)

    # ── Sessions ──────────────────────────────────────────────────────────
    session_secret: str = Field(default=DEFAULT_SESSION_SECRET)
    session_cookie: str = Field(default="recipebox_session")
    session_max_age: int = Field(default=14 * 24 * 3600, ge=60)
    session_https_only: bool = Field(default=False)

    # ── Passwords ─────────────────────────────────────────────────────────
    # bcrypt work factor; tests lower it to keep the suite fast
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # ── Environment ───────────────────────────────────────────────────────
    environment: str = Field(default="development")

    # Include raw driver text in 500 envelopes. Defaults to True outside production.
    expose_error_details: Optional[bool] = Field(default=None)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid = {"development", "test", "production"}
        lower = v.lower()
        if lower not in valid:
            raise ValueError(f"Invalid environment '{v}'. Must be one of: {valid}")
        return lower

    @model_validator(mode="after")
    def default_error_details(self) -> "Settings":
        if self.expose_error_details is None:
            self.expose_error_details = self.environment != "production"
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that security-sensitive settings are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises one ValueError listing them.
        """
        errors = []
        if self.environment == "production":
            if self.session_secret == DEFAULT_SESSION_SECRET:
                errors.append("SESSION_SECRET must be set to a random value in production.")
            if not self.session_https_only:
                errors.append("SESSION_HTTPS_ONLY should be enabled in production.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


settings = Settings()


def get_settings(request: Request) -> Settings:
    """FastAPI dependency: the Settings the running app was built with."""
    return request.app.state.settings
