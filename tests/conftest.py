"""Shared fixtures: in-memory credential store and provider client mocks."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from statussync.domain.entities import (
    PlaybackSnapshot,
    ProviderCredential,
    SlackProfile,
    UserAccount,
)
from statussync.domain.exceptions import EntityNotFoundException
from statussync.domain.ports import ICredentialStore, ISlackClient, ISpotifyClient

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@dataclass
class StoredCredential:
    access_token: str
    refresh_token: str
    expires_at: datetime


class InMemoryCredentialStore(ICredentialStore):
    """Dict-backed ICredentialStore with the same semantics as the SQL store.

    Hey future me - ``fail_on`` lets a test make one method blow up for one user,
    which is how the isolation tests simulate a store outage for a single user.
    """

    def __init__(self) -> None:
        self.users: dict[str, UserAccount] = {}
        self.credentials: dict[str, StoredCredential] = {}
        self.fail_on: dict[tuple[str, str], Exception] = {}
        self.deleted: list[str] = []
        self.teams: dict[str, str | None] = {}

    def _maybe_fail(self, method: str, user_id: str) -> None:
        error = self.fail_on.get((method, user_id))
        if error is not None:
            raise error

    def add_user(
        self,
        user_id: str,
        *,
        slack_token: str | None = "xoxp-token",
        spotify_id: str | None = None,
        access_token: str = "access",
        refresh_token: str = "refresh",
        expires_at: datetime | None = None,
        last_status: str | None = None,
    ) -> UserAccount:
        """Seed a user (and optionally a linked credential)."""
        user = UserAccount(
            user_id=user_id,
            spotify_id=spotify_id,
            slack_token=slack_token,
            last_status=last_status,
        )
        self.users[user_id] = user
        if spotify_id is not None:
            self.credentials[spotify_id] = StoredCredential(
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at or NOW + timedelta(hours=1),
            )
        return user

    async def get(self, user_id: str) -> ProviderCredential | None:
        self._maybe_fail("get", user_id)
        user = self.users.get(user_id)
        if user is None or user.spotify_id is None:
            return None
        stored = self.credentials.get(user.spotify_id)
        if stored is None:
            return None
        return ProviderCredential(
            spotify_id=user.spotify_id,
            access_token=stored.access_token,
            refresh_token=stored.refresh_token,
            expires_at=stored.expires_at,
        )

    async def upsert(
        self,
        spotify_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> None:
        self.credentials[spotify_id] = StoredCredential(access_token, refresh_token, expires_at)

    async def update_credential(
        self,
        spotify_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> bool:
        if spotify_id not in self.credentials:
            return False
        self.credentials[spotify_id] = StoredCredential(access_token, refresh_token, expires_at)
        return True

    async def list_expiring_before(self, instant: datetime) -> list[str]:
        return [
            user.user_id
            for user in self.users.values()
            if user.spotify_id in self.credentials
            and self.credentials[user.spotify_id].expires_at <= instant
        ]

    async def list_connected_users(self) -> list[str]:
        return sorted(u.user_id for u in self.users.values() if u.is_connected)

    async def get_last_status(self, user_id: str) -> str | None:
        user = self.users.get(user_id)
        return user.last_status if user else None

    async def set_last_status(self, user_id: str, status: str) -> None:
        self._maybe_fail("set_last_status", user_id)
        if user_id not in self.users:
            raise EntityNotFoundException("SlackAccount", user_id)
        self.users[user_id].last_status = status

    async def delete_all_data(self, user_id: str) -> None:
        user = self.users.pop(user_id, None)
        if user is not None and user.spotify_id is not None:
            self.credentials.pop(user.spotify_id, None)
        self.deleted.append(user_id)

    async def ensure_user(self, user_id: str) -> None:
        self.users.setdefault(user_id, UserAccount(user_id=user_id))

    async def link_spotify(self, user_id: str, spotify_id: str) -> None:
        if user_id not in self.users:
            raise EntityNotFoundException("SlackAccount", user_id)
        self.users[user_id].spotify_id = spotify_id

    async def unlink_spotify(self, user_id: str) -> None:
        user = self.users.get(user_id)
        if user is None or user.spotify_id is None:
            return
        self.credentials.pop(user.spotify_id, None)
        user.spotify_id = None

    async def get_slack_token(self, user_id: str) -> str | None:
        user = self.users.get(user_id)
        return user.slack_token if user else None

    async def set_slack_token(self, user_id: str, token: str, team_id: str | None = None) -> None:
        user = self.users.setdefault(user_id, UserAccount(user_id=user_id))
        user.slack_token = token
        if team_id is not None:
            user.team_id = team_id

    async def ensure_team(self, team_id: str) -> None:
        self.teams.setdefault(team_id, None)

    async def set_team_token(self, team_id: str, token: str) -> None:
        if team_id not in self.teams:
            raise EntityNotFoundException("Team", team_id)
        self.teams[team_id] = token

    async def delete_team(self, team_id: str) -> None:
        self.teams.pop(team_id, None)
        for user in self.users.values():
            if user.team_id == team_id:
                user.team_id = None


@pytest.fixture
def store() -> InMemoryCredentialStore:
    """Empty in-memory credential store."""
    return InMemoryCredentialStore()


@pytest.fixture
def spotify() -> AsyncMock:
    """Spotify client mock (nothing playing by default)."""
    client = AsyncMock(spec=ISpotifyClient)
    client.get_currently_playing.return_value = PlaybackSnapshot.not_playing()
    client.get_authorization_url = MagicMock(return_value="https://accounts.spotify.com/authorize?x=1")
    return client


@pytest.fixture
def slack() -> AsyncMock:
    """Slack client mock (blank status by default)."""
    client = AsyncMock(spec=ISlackClient)
    client.get_profile.return_value = SlackProfile()
    client.set_profile.return_value = None
    return client
