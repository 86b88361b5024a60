"""Application settings.

Hey future me - every value can be overridden from the environment with the
COVERSCOUT_ prefix and "__" between group and field, e.g.

    COVERSCOUT_NETWORK__ENABLED=false
    COVERSCOUT_DATABASE__URL=sqlite+aiosqlite:///./covers.db
    COVERSCOUT_OBSERVABILITY__LOG_JSON_FORMAT=true
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CoverSupplier = Literal["coverartarchive", "none"]


class NetworkSettings(BaseModel):
    """External network access."""

    enabled: bool = Field(
        default=True,
        description="Allow MusicBrainz/Cover Art Archive lookups. When disabled, "
        "misses are cached with the never-expiring sentinel",
    )
    cover_supplier: CoverSupplier = Field(
        default="coverartarchive",
        description="Where audio covers come from ('none' disables covers entirely)",
    )


class MusicBrainzSettings(BaseModel):
    """MusicBrainz web service."""

    app_name: str = Field(default="CoverScout", description="User-Agent application name")
    app_version: str = Field(default="0.1.0", description="User-Agent application version")
    contact: str = Field(
        default="coverscout@example.com",
        description="Contact URL or e-mail required by the MusicBrainz usage policy",
    )
    base_url: str = Field(default="https://musicbrainz.org/ws/2")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    rate_limit_delay: float = Field(
        default=1.0, ge=0, description="Minimum seconds between requests (MB allows 1/s)"
    )


class CoverArtArchiveSettings(BaseModel):
    """Cover Art Archive."""

    base_url: str = Field(default="https://coverartarchive.org")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    thumbnail_size: Literal["250", "500", "1200"] = Field(
        default="500", description="Pre-rendered thumbnail size to download"
    )


class ThumbnailSettings(BaseModel):
    """Derived thumbnail envelope."""

    max_width: int = Field(default=640, gt=0)
    max_height: int = Field(default=480, gt=0)
    jpeg_quality: int = Field(default=85, ge=1, le=95)


class CacheSettings(BaseModel):
    """Request coordination and in-memory cache tier."""

    ticket_timeout: float = Field(
        default=10.0, gt=0, description="Max seconds to wait for an in-flight lookup"
    )
    cleanup_interval: float = Field(
        default=120.0, gt=0, description="Min seconds between in-memory cache sweeps"
    )


class DatabaseSettings(BaseModel):
    """Persistent cache database."""

    url: str = Field(default="sqlite+aiosqlite:///./coverscout.db")
    echo: bool = Field(default=False, description="Log SQL statements")

    @property
    def sqlite_path(self) -> Path | None:
        """Database file path for SQLite URLs, None for other backends and :memory:."""
        if not self.url.startswith("sqlite"):
            return None
        _, _, path = self.url.partition(":///")
        if not path or path == ":memory:":
            return None
        return Path(path)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if "+aiosqlite" not in v:
            raise ValueError("Database URL must use an async driver (sqlite+aiosqlite://...)")
        return v


class ObservabilitySettings(BaseModel):
    """Logging."""

    log_level: str = Field(default="INFO")
    log_json_format: bool = Field(default=False, description="JSON logs for production")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


class Settings(BaseSettings):
    """All CoverScout settings."""

    model_config = SettingsConfigDict(
        env_prefix="COVERSCOUT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    network: NetworkSettings = Field(default_factory=NetworkSettings)
    musicbrainz: MusicBrainzSettings = Field(default_factory=MusicBrainzSettings)
    coverartarchive: CoverArtArchiveSettings = Field(default_factory=CoverArtArchiveSettings)
    thumbnail: ThumbnailSettings = Field(default_factory=ThumbnailSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def user_agent(self) -> str:
        """User-Agent in the format MusicBrainz asks for."""
        mb = self.musicbrainz
        return f"{mb.app_name}/{mb.app_version} ( {mb.contact} )"


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings (cached)."""
    return Settings()
