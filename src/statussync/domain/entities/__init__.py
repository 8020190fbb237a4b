"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum


class PlaybackKind(str, Enum):
    """What Spotify reports as currently playing."""

    TRACK = "track"
    EPISODE = "episode"
    NONE = "none"


@dataclass(frozen=True)
class ShowInfo:
    """Podcast show an episode belongs to."""

    name: str
    publisher: str


# Hey future me, a snapshot is a single read of "what is this user playing RIGHT NOW".
# It's never stored - every tick fetches a new one. kind=NONE covers paused, private
# session, 204 No Content AND playback types we don't understand (ads, "unknown").
# The formatter turns all of those into an empty status.
@dataclass(frozen=True)
class PlaybackSnapshot:
    """Point-in-time playback state for one user."""

    is_playing: bool
    kind: PlaybackKind
    title: str = ""
    artists: tuple[str, ...] = ()
    show: ShowInfo | None = None

    @classmethod
    def not_playing(cls) -> "PlaybackSnapshot":
        """Snapshot for 'nothing is playing'."""
        return cls(is_playing=False, kind=PlaybackKind.NONE)


@dataclass
class ProviderCredential:
    """Spotify OAuth credential for one linked Spotify account."""

    spotify_id: str
    access_token: str
    refresh_token: str
    expires_at: datetime

    def is_expiring(self, before: datetime) -> bool:
        """Check whether the access token expires at or before ``before``."""
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at <= before


@dataclass
class UserAccount:
    """A Slack user of the app.

    Created on first interaction, mutated by the OAuth callback flows (tokens)
    and by the sync engine (last applied status), deleted on disconnect or
    when a provider reports the authorization revoked.
    """

    user_id: str
    spotify_id: str | None = None
    slack_token: str | None = None
    last_status: str | None = None
    team_id: str | None = None

    @property
    def is_connected(self) -> bool:
        """Both Slack and Spotify are linked."""
        return bool(self.slack_token) and self.spotify_id is not None


@dataclass(frozen=True)
class SlackProfile:
    """The status fields of a Slack profile."""

    status_text: str = ""
    status_emoji: str = ""
    status_expiration: int = 0


# Yo, refresh_token is Optional on purpose - Spotify only sends a new refresh token
# when it decides to rotate it. None means "keep the one you already have".
@dataclass(frozen=True)
class TokenGrant:
    """Token endpoint response."""

    access_token: str
    expires_in_seconds: int
    refresh_token: str | None = None
    scope: str | None = None

    def expires_at(self, now: datetime | None = None) -> datetime:
        """Absolute expiry computed from the provider-declared TTL."""
        start = now or datetime.now(UTC)
        return start + timedelta(seconds=self.expires_in_seconds)


@dataclass(frozen=True)
class SlackGrant:
    """Result of the Slack OAuth code exchange."""

    user_id: str
    access_token: str
    team_id: str | None = None
    bot_token: str | None = None
    scopes: list[str] = field(default_factory=list)


__all__ = [
    "PlaybackKind",
    "PlaybackSnapshot",
    "ProviderCredential",
    "ShowInfo",
    "SlackGrant",
    "SlackProfile",
    "TokenGrant",
    "UserAccount",
]
