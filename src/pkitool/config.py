"""
Configuration: typed, validated settings loaded from environment/.env.

Uses pydantic-settings so every default the CLI falls back to can be set
once per shell or per project:

  PKITOOL_DIRECTORY=/srv/pki
  PKITOOL_KEY_SIZE=2048
  PKITOOL_VALID_YEARS=5
  PKITOOL_LOG_LEVEL=INFO

Command-line flags always win over these values.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Environment variables (PKITOOL_*)
      2. .env file in the working directory
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="PKITOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    directory: Path = Field(default=Path("."), description="Directory holding certificates and keys")
    key_size: int = Field(default=4096, ge=1024, description="RSA key size in bits")
    valid_years: int = Field(default=2, ge=1, description="Validity of new certificates in years")
    log_level: str = Field(default="WARNING")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept standard logging level names in any case."""
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got {value!r}")
        return level
