"""Configuration module for statussync."""

from .settings import (
    DatabaseSettings,
    ObservabilitySettings,
    SchedulerSettings,
    Settings,
    SlackSettings,
    SpotifySettings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "ObservabilitySettings",
    "SchedulerSettings",
    "Settings",
    "SlackSettings",
    "SpotifySettings",
    "get_settings",
]
