"""Configuration settings for the OAuth2 credential model using Pydantic Settings.

This module provides type-safe configuration management with automatic validation
and environment variable loading.
"""

import logging
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from oauth2_model.core.constants import (
    BCRYPT_ROUNDS_DEFAULT,
    BCRYPT_ROUNDS_MIN,
    MAX_GENERATION_ATTEMPTS_DEFAULT,
    TOKEN_BYTES_DEFAULT,
)

logger = logging.getLogger(__name__)

SUPPORTED_STORES = ("memory", "file")


class Settings(BaseSettings):
    """Central configuration management with Pydantic validation.

    All settings are loaded from environment variables with automatic type conversion
    and validation. Default values are provided for every setting.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
        validate_default=True,
        populate_by_name=True,
    )

    # ========================================
    # Debug Settings
    # ========================================
    debug: bool = Field(
        default=False,
        alias="OAUTH2_DEBUG",
        description="Enable debug mode with verbose logging",
    )

    # ========================================
    # Store Settings
    # ========================================
    oauth2_store: str = Field(
        default="memory",
        description="Record store backend (memory or file)",
    )

    oauth2_storage_dir: str = Field(
        default=".oauth_storage",
        description="Directory used by the file store",
    )

    # ========================================
    # Credential Settings
    # ========================================
    oauth2_bcrypt_rounds: int = Field(
        default=BCRYPT_ROUNDS_DEFAULT,
        ge=BCRYPT_ROUNDS_MIN,
        le=31,
        description="bcrypt work factor for client secrets",
    )

    oauth2_token_bytes: int = Field(
        default=TOKEN_BYTES_DEFAULT,
        ge=16,
        le=128,
        description="Random bytes drawn per code, token and client id (client secrets cap at 54 for bcrypt)",
    )

    oauth2_max_generation_attempts: int = Field(
        default=MAX_GENERATION_ATTEMPTS_DEFAULT,
        ge=1,
        le=100,
        description="Attempts allowed to produce a unique identifier before failing",
    )

    oauth2_default_duration: int | None = Field(
        default=None,
        ge=1,
        description="Lifetime in seconds applied when a grant gives no duration (None = never expires)",
    )

    # ========================================
    # Validators
    # ========================================
    @field_validator("oauth2_store", mode="before")
    @classmethod
    def check_store(cls, v: Any) -> str:
        """Normalize and validate the store backend name."""
        value = str(v or "memory").strip().lower()
        if value not in SUPPORTED_STORES:
            msg = f"oauth2_store must be one of {', '.join(SUPPORTED_STORES)}, got {v!r}"
            raise ValueError(msg)
        return value

    # ========================================
    # Helper Methods
    # ========================================
    def to_dict(self) -> dict[str, Any]:
        """Export settings as a dictionary."""
        return {
            "debug": self.debug,
            "oauth2_store": self.oauth2_store,
            "oauth2_storage_dir": self.oauth2_storage_dir,
            "oauth2_bcrypt_rounds": self.oauth2_bcrypt_rounds,
            "oauth2_token_bytes": self.oauth2_token_bytes,
            "oauth2_max_generation_attempts": self.oauth2_max_generation_attempts,
            "oauth2_default_duration": self.oauth2_default_duration,
        }


# Singleton pattern with proper typing
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
        logger.info("Settings initialized from environment")
        logger.debug("Record store: %s", _settings_instance.oauth2_store)
        if _settings_instance.oauth2_bcrypt_rounds < 10:
            logger.warning(
                "OAUTH2_BCRYPT_ROUNDS=%d is below 10. Use low work factors only in tests.",
                _settings_instance.oauth2_bcrypt_rounds,
            )
    return _settings_instance


def reset_settings() -> None:
    """Reset settings instance (useful for testing)."""
    global _settings_instance
    _settings_instance = None
