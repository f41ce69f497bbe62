"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

The security middleware skips API routes and static assets. Its default
exclusion for API routes is anchored to the ``/api`` path segment, so
prefixes that merely start with "api" (``/apiary``, ``/api-docs``) are
treated as pages and receive the security headers.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_SECURITY_EXCLUDED_PATHS = [
    r"^/api(/|$)",
    r"^/_next/static",
    r"^/_next/image",
    r"^/favicon\.ico$",
    r"^/static/",
]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_database_settings() -> "DatabaseSettings":
    return DatabaseSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    validate_env_on_startup: bool = Field(
        False,
        description="Fail application startup when required env vars are missing",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable the per-client rate limit dependency on API routes",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of admissions allowed per window (per client)",
        ge=0,
    )
    rate_limit_window_ms: int = Field(
        60000,
        description="Rate limit window size in milliseconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_max_entries: int | None = Field(
        None,
        description="Evict least recently used identifiers beyond this count (unbounded when unset)",
        ge=1,
    )
    trust_forwarded_for: bool = Field(
        False,
        description="Key clients on the first X-Forwarded-For hop (only behind a trusted proxy)",
    )

    security_headers_enabled: bool = Field(
        True,
        description="Attach security headers to non-excluded responses",
    )
    security_throttle_enabled: bool = Field(
        False,
        description="Throttle non-excluded requests inside the security middleware",
    )
    security_excluded_paths: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SECURITY_EXCLUDED_PATHS),
        description="Regex patterns of request paths skipped by the security middleware",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Hosted database (REST interface) configuration.

    Both values are optional here so the app can boot without a database;
    env validation and the client factory enforce them where needed.
    """

    url: str | None = Field(
        None,
        description="Database service URL (e.g., https://xyz.supabase.co)",
    )
    anon_key: str | None = Field(
        None,
        description="Public access key sent as apikey/Bearer token",
    )
    timeout_seconds: float = Field(
        10.0,
        description="HTTP timeout for database requests in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate request correlation ids",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    database: DatabaseSettings = Field(default_factory=_build_database_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
