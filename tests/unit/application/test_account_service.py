"""Tests for AccountService."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from statussync.application.services import AccountService
from statussync.domain.entities import SlackGrant, TokenGrant
from statussync.domain.exceptions import EntityNotFoundException, MalformedResponseError


@pytest.fixture
def service(store, spotify: AsyncMock, slack: AsyncMock) -> AccountService:
    return AccountService(store, spotify, slack)


class TestLinking:
    """Test the OAuth completion flows."""

    async def test_complete_slack_link_stores_token_and_team(
        self, service, store, slack: AsyncMock
    ) -> None:
        slack.exchange_code.return_value = SlackGrant(
            user_id="U1", access_token="xoxp-1", team_id="T1", bot_token="xoxb-1"
        )

        grant = await service.complete_slack_link("code")

        assert grant.user_id == "U1"
        assert store.users["U1"].slack_token == "xoxp-1"
        assert store.users["U1"].team_id == "T1"
        assert store.teams == {"T1": "xoxb-1"}

    async def test_complete_slack_link_without_bot_token(
        self, service, store, slack: AsyncMock
    ) -> None:
        slack.exchange_code.return_value = SlackGrant(
            user_id="U1", access_token="xoxp-1", team_id="T1"
        )

        await service.complete_slack_link("code")

        assert store.teams == {"T1": None}

    async def test_complete_spotify_link_upserts_and_links(
        self, service, store, spotify: AsyncMock
    ) -> None:
        await service.ensure_user("U1")
        spotify.exchange_token.return_value = TokenGrant(
            access_token="A1", expires_in_seconds=3600, refresh_token="R1"
        )
        spotify.get_profile_id.return_value = "sp1"

        spotify_id = await service.complete_spotify_link("U1", "code")

        assert spotify_id == "sp1"
        spotify.exchange_token.assert_awaited_once_with("code", is_refresh=False)
        assert store.users["U1"].spotify_id == "sp1"
        assert store.credentials["sp1"].refresh_token == "R1"
        assert store.credentials["sp1"].expires_at > datetime.now(UTC)

    async def test_code_grant_without_refresh_token_is_rejected(
        self, service, store, spotify: AsyncMock
    ) -> None:
        await service.ensure_user("U1")
        spotify.exchange_token.return_value = TokenGrant("A1", 3600, refresh_token=None)

        with pytest.raises(MalformedResponseError):
            await service.complete_spotify_link("U1", "code")
        assert store.credentials == {}

    async def test_link_for_unknown_user_raises(self, service, spotify: AsyncMock) -> None:
        spotify.exchange_token.return_value = TokenGrant("A1", 3600, refresh_token="R1")
        spotify.get_profile_id.return_value = "sp1"

        with pytest.raises(EntityNotFoundException):
            await service.complete_spotify_link("ghost", "code")

    def test_authorization_url_carries_user_as_state(
        self, service, spotify: AsyncMock
    ) -> None:
        service.spotify_authorization_url("U1")
        spotify.get_authorization_url.assert_called_once_with(state="U1")


class TestDisconnect:
    """Test disconnect flows."""

    async def test_disconnect_removes_everything(self, service, store) -> None:
        store.add_user("U1", spotify_id="sp1")

        await service.disconnect("U1")

        assert "U1" not in store.users
        assert "sp1" not in store.credentials

    async def test_disconnect_spotify_keeps_slack(self, service, store) -> None:
        store.add_user("U1", spotify_id="sp1")

        await service.disconnect_spotify("U1")

        assert store.users["U1"].spotify_id is None
        assert store.users["U1"].slack_token == "xoxp-token"
        assert "sp1" not in store.credentials


class TestTokensRevoked:
    """Test handling of Slack's tokens_revoked event."""

    async def test_revoked_user_tokens_remove_users(self, service, store) -> None:
        store.add_user("U1", spotify_id="sp1")
        store.add_user("U2", spotify_id="sp2")
        store.add_user("U3", spotify_id="sp3")

        await service.handle_tokens_revoked("T1", ["U1", "U2"])

        assert set(store.users) == {"U3"}
        assert set(store.credentials) == {"sp3"}

    async def test_revoked_bot_token_removes_team(self, service, store, slack: AsyncMock) -> None:
        slack.exchange_code.return_value = SlackGrant(
            user_id="U1", access_token="xoxp-1", team_id="T1", bot_token="xoxb-1"
        )
        await service.complete_slack_link("code")

        await service.handle_tokens_revoked("T1", [], bot_revoked=True)

        assert store.teams == {}
        assert store.users["U1"].team_id is None
        assert store.users["U1"].slack_token == "xoxp-1"

    async def test_user_revocation_alone_keeps_team(self, service, store) -> None:
        await store.ensure_team("T1")
        store.add_user("U1", spotify_id="sp1")

        await service.handle_tokens_revoked("T1", ["U1"])

        assert "T1" in store.teams
        assert store.users == {}
