"""
Application Settings.

Centralized configuration using Pydantic Settings with environment variable loading.
All settings are validated at startup - missing required values will raise an error.

Production Mode:
    When app_env="production", additional validations apply:
    - debug must be False
    - cors_allowed_origins cannot be ["*"]
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase (backing store + identity)
    # -------------------------------------------------------------------------
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_key: SecretStr = Field(..., description="Supabase anon or service key")
    health_check_table: str = Field(
        default="searches",
        description="Table the connectivity probe reads zero rows from; any existing table works",
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    api_host: str = Field(default="0.0.0.0", description="Bind host for uvicorn")
    api_port: int = Field(default=8000, description="Bind port for uvicorn")

    # -------------------------------------------------------------------------
    # CORS Settings
    # -------------------------------------------------------------------------
    cors_allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins. Use ['*'] for development only.",
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow credentials in CORS requests",
    )

    # -------------------------------------------------------------------------
    # Timeouts
    # -------------------------------------------------------------------------
    store_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for the backing-store connectivity probe",
    )
    auth_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for resolving a principal from a bearer token",
    )
    search_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for the competitor search collaborator",
    )

    # -------------------------------------------------------------------------
    # Map rendering
    # -------------------------------------------------------------------------
    map_default_zoom: int = Field(
        default=13,
        ge=1,
        le=20,
        description="Initial zoom level for rendered maps",
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL for shared rate limits (in-memory when unset)",
    )
    rate_limit_free: int = Field(default=100, ge=1, description="Requests per window, free tier")
    rate_limit_pro: int = Field(default=1000, ge=1, description="Requests per window, pro tier")
    rate_limit_enterprise: int = Field(
        default=10000,
        ge=1,
        description="Requests per window, enterprise tier",
    )
    rate_limit_window_seconds: int = Field(
        default=3600,
        gt=0,
        description="Rate limit window in seconds",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production settings are secure."""
        if self.app_env == "production":
            errors = []

            if self.debug:
                errors.append("debug must be False in production")

            if "*" in self.cors_allowed_origins:
                errors.append("cors_allowed_origins cannot contain '*' in production")

            if errors:
                raise ValueError(
                    f"Production configuration errors: {'; '.join(errors)}"
                )

        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()
