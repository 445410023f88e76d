"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    log_level: str = "INFO"

    # ==========================================================================
    # API
    # ==========================================================================

    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # ==========================================================================
    # Authentication (token verification only, issuance lives elsewhere)
    # ==========================================================================

    jwt_secret_key: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"

    # ==========================================================================
    # Resource naming
    # ==========================================================================

    # Used when route guards build GRNs for this service's own resources
    default_partition: str = "global"
    system_name: str = "iam"

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    # YAML realm fixture loaded into the in-memory store at startup
    seed_file: str = ""
    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
