"""HTTP clients for the external providers."""

from statussync.infrastructure.integrations.slack_client import SlackClient
from statussync.infrastructure.integrations.spotify_client import SpotifyClient

__all__ = ["SlackClient", "SpotifyClient"]
