"""
Unified configuration for rpc-core.

This module provides a single Settings class for the retry and login knobs
used by stubs and recoverable calls. Values are loaded from a .env file at
the project root and can be overridden by real environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine project root for .env file loading (allows running from any CWD)
PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Settings for rpc-core.

    Environment variables are loaded from .env file and can be overridden
    by actual environment variables.
    """

    # Service identification
    SERVICE_NAME: str = "rpc-core"

    # Login endpoint used by HttpLoginDriver
    RPC_LOGIN_URL: str = "http://localhost:8080/auth/login"
    RPC_HTTP_TIMEOUT: float = 30.0

    # Recoverable call defaults
    RPC_MAX_RETRIES: int = 5
    RPC_BASE_DELAY_MS: int = 3000

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        extra="ignore"
    )


# Global settings instance
settings = Settings()  # type: ignore
