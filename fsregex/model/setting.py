"""
Global settings management using Pydantic.

Defaults for the regex tools (binary sniff size, result cap, timeout, encoding)
and logging. Values come from ``FSREGEX_*`` environment variables or a ``.env``
file. Tools receive a Settings instance explicitly; nothing reads these values
as module globals at call time.
"""
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    model_config = SettingsConfigDict(
        env_prefix="FSREGEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    binary_check_size: int = Field(
        default=8192,
        description="Bytes scanned for a zero byte before a file is treated as binary (<=0 disables the check)"
    )

    max_results: int = Field(
        default=100,
        ge=0,
        description="Global cap on results returned across all files (0 means no cap)"
    )

    timeout_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Deadline for one whole operation in seconds (0 disables the deadline)"
    )

    encoding: str = Field(
        default="utf-8",
        description="Text encoding used to read and write files"
    )

    # Logging configuration
    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )

    log_file: str | None = Field(
        default=None,
        description="Optional log file path, stderr only when unset"
    )


# Global singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global singleton Settings instance.

    Creates the instance on first call, subsequent calls return the same instance.

    Returns:
        Settings: The global settings instance
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings from environment variables.

    Returns:
        Settings: The new settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
