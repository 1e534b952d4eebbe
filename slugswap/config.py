"""Runtime configuration — env-driven.

Centralized config using pydantic-settings for environment variable
support. Reads from a .env file and SLUGSWAP_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class SwapConfig(BaseSettings):
    """Marketplace configuration with environment variable overrides.

    All settings can be overridden via SLUGSWAP_* environment variables
    or a .env file in the project root.

    Examples
    --------
    Override via environment::

        export SLUGSWAP_ENVIRONMENT=staging
        export SLUGSWAP_LOG_LEVEL=DEBUG
        export SLUGSWAP_DB_PATH=/data/slugswap.db

    Or via .env file::

        SLUGSWAP_RETENTION_HOURS=24
        SLUGSWAP_EMAIL_DOMAIN=ucsc.edu
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SLUGSWAP_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage
    db_path: Path = Path(".slugswap/listings.db")

    # Listing lifecycle
    retention_hours: float = 24.0  # sold listings are removed this long after sale
    sweep_interval_seconds: float = 60.0

    # Identity
    email_domain: str = "ucsc.edu"
    default_avatar: str = (
        "https://images.unsplash.com/photo-1649972904349-6e44c42644a7"
        "?w=100&h=100&fit=crop&crop=face"
    )

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton; import as `from slugswap.config import config`
config = SwapConfig()
