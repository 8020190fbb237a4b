"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from datetime import datetime

from statussync.domain.entities import (
    PlaybackSnapshot,
    ProviderCredential,
    SlackGrant,
    SlackProfile,
    TokenGrant,
)


# Hey future me, ICredentialStore is a PORT! The workers and services only talk to
# this interface, so tests can swap in the in-memory fake from tests/conftest.py and
# production uses SqlCredentialStore. Every method is its own transaction - there is
# no "unit of work" spanning calls. That's what lets the refresh worker and the sync
# worker share the store without a lock: they write different columns.
class ICredentialStore(ABC):
    """Persistence contract for users, Spotify credentials and last statuses."""

    @abstractmethod
    async def get(self, user_id: str) -> ProviderCredential | None:
        """Get the Spotify credential linked to a Slack user (None if not linked)."""
        pass

    @abstractmethod
    async def upsert(
        self,
        spotify_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> None:
        """Create or overwrite the credential for a Spotify account."""
        pass

    @abstractmethod
    async def update_credential(
        self,
        spotify_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> bool:
        """Overwrite an existing credential; never creates one.

        Returns:
            False if the credential row no longer exists
        """
        pass

    @abstractmethod
    async def list_expiring_before(self, instant: datetime) -> list[str]:
        """List Slack user ids whose Spotify token expires at or before ``instant``."""
        pass

    @abstractmethod
    async def list_connected_users(self) -> list[str]:
        """List users with both a Slack token and a linked Spotify account."""
        pass

    @abstractmethod
    async def get_last_status(self, user_id: str) -> str | None:
        """Get the status text we last wrote for the user."""
        pass

    @abstractmethod
    async def set_last_status(self, user_id: str, status: str) -> None:
        """Remember the status text we just wrote."""
        pass

    @abstractmethod
    async def delete_all_data(self, user_id: str) -> None:
        """Remove the user, their credential and their last status."""
        pass

    @abstractmethod
    async def ensure_user(self, user_id: str) -> None:
        """Create the user record if it does not exist yet."""
        pass

    @abstractmethod
    async def link_spotify(self, user_id: str, spotify_id: str) -> None:
        """Tie a Slack user to a stored Spotify credential."""
        pass

    @abstractmethod
    async def unlink_spotify(self, user_id: str) -> None:
        """Detach and delete the user's Spotify credential, keeping the user."""
        pass

    @abstractmethod
    async def get_slack_token(self, user_id: str) -> str | None:
        """Get the user's Slack token."""
        pass

    @abstractmethod
    async def set_slack_token(
        self, user_id: str, token: str, team_id: str | None = None
    ) -> None:
        """Store the user's Slack token (and team)."""
        pass

    @abstractmethod
    async def ensure_team(self, team_id: str) -> None:
        """Create the team record if it does not exist yet."""
        pass

    @abstractmethod
    async def set_team_token(self, team_id: str, token: str) -> None:
        """Store the workspace (bot) token for a team."""
        pass

    @abstractmethod
    async def delete_team(self, team_id: str) -> None:
        """Remove a team record and its bot token; its users stay."""
        pass


class ISpotifyClient(ABC):
    """Spotify Web API contract used by the core."""

    @abstractmethod
    async def exchange_token(
        self, code_or_refresh_token: str, is_refresh: bool
    ) -> TokenGrant:
        """Exchange an authorization code or a refresh token for tokens."""
        pass

    @abstractmethod
    async def get_currently_playing(self, access_token: str) -> PlaybackSnapshot:
        """Read the user's current playback state."""
        pass

    @abstractmethod
    async def get_profile_id(self, access_token: str) -> str:
        """Get the Spotify account id for a token."""
        pass

    @abstractmethod
    def get_authorization_url(self, state: str) -> str:
        """Build the consent URL the user is sent to."""
        pass


class ISlackClient(ABC):
    """Slack Web API contract used by the core."""

    @abstractmethod
    async def get_profile(self, token: str, user_id: str) -> SlackProfile:
        """Read the user's current status fields."""
        pass

    @abstractmethod
    async def set_profile(self, token: str, status_text: str, status_emoji: str) -> None:
        """Write the user's status fields (never with an expiration)."""
        pass

    @abstractmethod
    async def exchange_code(self, code: str) -> SlackGrant:
        """Exchange an OAuth code for a user token."""
        pass


__all__ = ["ICredentialStore", "ISlackClient", "ISpotifyClient"]
