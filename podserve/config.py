"""Configuration management for podserve."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or CLI flags."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="PODSERVE_", extra="ignore", frozen=True
    )

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=0, le=65535)
    shutdown_grace_seconds: int = Field(default=30, ge=0)

    # Catalog
    dir: Path = Path(".")
    base_url: str = "http://localhost:8080/"
    refresh_interval_seconds: float = Field(default=60.0, gt=0)

    # Channel metadata
    title: str = "My Podcast"
    description: str = "Podcast served from a local directory"
    language: str = "en-us"
    cover_file: Path | None = None  # overrides the bundled cover.png

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")
    debug_log: bool = False

    @field_validator("base_url")
    @classmethod
    def _ensure_trailing_slash(cls, value: str) -> str:
        # Item links are built by plain concatenation.
        if not value.endswith("/"):
            value += "/"
        return value


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
