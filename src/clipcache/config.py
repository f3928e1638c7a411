"""Configuration management using pydantic-settings."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from CLIPCACHE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CLIPCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Resolution service
    service_api_url: str | None = Field(
        default=None,
        description="Base address of the upstream resolution service",
    )
    resolve_timeout: float = Field(
        default=30.0, gt=0, description="Resolution request timeout in seconds"
    )

    # Cache
    cache_dir: Path = Field(
        default=Path("uploads"), description="Directory holding cached assets"
    )
    ttl_ms: int = Field(
        default=300_000, ge=1, description="Retention window in milliseconds"
    )
    size_threshold_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=0,
        description="Assets larger than this are returned as direct links",
    )
    sweep_interval_seconds: float = Field(
        default=60.0, gt=0, description="Seconds between background sweeps"
    )
    sweep_on_request: bool = Field(
        default=True, description="Also sweep at the start of every request"
    )

    # Origin downloads
    probe_timeout: float = Field(
        default=10.0, gt=0, description="Size probe timeout in seconds"
    )
    fetch_timeout: float = Field(
        default=120.0, gt=0, description="Full download timeout in seconds"
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")
    public_base_url: str | None = Field(
        default=None,
        description="Externally visible base URL; defaults to the request's",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Allowed CORS origins"
    )

    @property
    def ttl(self) -> timedelta:
        return timedelta(milliseconds=self.ttl_ms)


@lru_cache
def get_settings() -> Settings:
    return Settings()
