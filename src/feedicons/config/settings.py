"""
Application settings and configuration management.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from feedicons import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="feedicons")
    app_version: str = Field(default=__version__)
    log_level: str = Field(default="INFO")

    # Storage
    cache_dir: Path = Field(default=Path("./cache/favicons"))

    # Network
    request_timeout: float = Field(default=10.0, gt=0)
    user_agent: str = Field(default=f"feedicons/{__version__}")
    max_favicon_bytes: int = Field(default=5 * 1024 * 1024, gt=0)

    # Discovery
    fallback_path: str = Field(default="/favicon.ico")

    # Performance
    max_workers: int = Field(default=4, ge=1)

    @field_validator("cache_dir", mode="before")
    @classmethod
    def ensure_path(cls, v: str | Path) -> Path:
        """Ensure directory paths are Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("fallback_path")
    @classmethod
    def validate_fallback_path(cls, v: str) -> str:
        """Fallback path is appended to an origin, so it must be absolute."""
        v = v.strip()
        if not v.startswith("/"):
            raise ValueError(f"Fallback path must start with '/': {v}")
        return v

    model_config = SettingsConfigDict(
        env_prefix="FEEDICONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()


# Global settings instance
settings = get_settings()
