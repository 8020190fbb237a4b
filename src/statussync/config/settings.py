"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SpotifySettings(BaseSettings):
    """Spotify OAuth application credentials and endpoints."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_", env_file=".env", extra="ignore"
    )

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:8000/spotify/callback"
    auth_url: str = "https://accounts.spotify.com/"
    api_url: str = "https://api.spotify.com/v1/"

    @property
    def is_configured(self) -> bool:
        """True when client credentials are present."""
        return bool(self.client_id.strip() and self.client_secret.strip())


class SlackSettings(BaseSettings):
    """Slack OAuth application credentials and endpoints."""

    model_config = SettingsConfigDict(
        env_prefix="SLACK_", env_file=".env", extra="ignore"
    )

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = "http://localhost:8000/slack/callback"
    api_url: str = "https://slack.com/api/"


class DatabaseSettings(BaseSettings):
    """Credential store connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=".env", extra="ignore"
    )

    url: str = "sqlite+aiosqlite:///./statussync.db"
    echo: bool = False
    pool_pre_ping: bool = True
    # Production runs `alembic upgrade head`; this is for local SQLite runs
    create_tables_on_startup: bool = False


# Hey future me - the lookahead MUST stay larger than the sync interval, otherwise a
# token can expire between two refresh cycles while the sync loop is still using it.
# The validator below enforces that so a bad .env fails at startup, not at 3am.
class SchedulerSettings(BaseSettings):
    """Intervals and limits for the background workers."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_", env_file=".env", extra="ignore"
    )

    sync_interval_seconds: float = Field(default=5.0, gt=0)
    token_refresh_interval_seconds: float = Field(default=900.0, gt=0)
    token_refresh_lookahead_minutes: int = Field(default=20, gt=0)
    max_concurrent_users: int = Field(default=4, ge=1)
    http_timeout_seconds: float = Field(default=10.0, gt=0)
    shutdown_timeout_seconds: float = Field(default=15.0, gt=0)

    # A token must never expire between two refresh cycles or inside one sync tick
    @model_validator(mode="after")
    def _lookahead_covers_intervals(self) -> "SchedulerSettings":
        lookahead_seconds = self.token_refresh_lookahead_minutes * 60
        if lookahead_seconds <= self.sync_interval_seconds:
            raise ValueError(
                "token_refresh_lookahead_minutes must exceed sync_interval_seconds"
            )
        if lookahead_seconds <= self.token_refresh_interval_seconds:
            raise ValueError(
                "token_refresh_lookahead_minutes must exceed token_refresh_interval_seconds"
            )
        return self


class ObservabilitySettings(BaseSettings):
    """Logging output settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_json_format: bool = False


class Settings(BaseSettings):
    """Top-level settings container."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "statussync"
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    slack: SlackSettings = Field(default_factory=SlackSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


# Cached on purpose: settings changes need a restart to take effect.
@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
