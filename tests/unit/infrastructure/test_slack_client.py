"""Tests for SlackClient with pytest-httpx."""

import json
from collections.abc import Callable

import httpx
import pytest
from pytest_httpx import HTTPXMock

from statussync.config import SlackSettings
from statussync.domain.exceptions import (
    AuthorizationRevokedError,
    MalformedResponseError,
    ProviderError,
)
from statussync.infrastructure.integrations import SlackClient

Handler = Callable[[httpx.Request], httpx.Response]
ClientFactory = Callable[[Handler], SlackClient]


@pytest.fixture
def settings() -> SlackSettings:
    return SlackSettings(client_id="cid", client_secret="secret")


@pytest.fixture
def make_client(settings: SlackSettings, httpx_mock: HTTPXMock) -> ClientFactory:
    def factory(handler: Handler) -> SlackClient:
        httpx_mock.add_callback(handler)
        return SlackClient(settings, http_client=httpx.AsyncClient())

    return factory


class TestProfile:
    """Test users.profile.get / users.profile.set."""

    async def test_get_profile(self, make_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/users.profile.get"
            assert request.url.params["user"] == "U1"
            assert request.headers["Authorization"] == "Bearer xoxp"
            return httpx.Response(
                200,
                json={
                    "ok": True,
                    "profile": {
                        "status_text": "Lunch",
                        "status_emoji": ":burrito:",
                        "status_expiration": 1700000000,
                    },
                },
            )

        profile = await make_client(handler).get_profile("xoxp", "U1")

        assert profile.status_text == "Lunch"
        assert profile.status_emoji == ":burrito:"
        assert profile.status_expiration == 1700000000

    async def test_set_profile_never_sets_expiration(self, make_client: ClientFactory) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        await make_client(handler).set_profile("xoxp", "Listening to x", ":musical_note:")

        assert bodies == [
            {
                "profile": {
                    "status_text": "Listening to x",
                    "status_emoji": ":musical_note:",
                    "status_expiration": 0,
                }
            }
        ]

    @pytest.mark.parametrize("error", ["token_revoked", "invalid_auth", "account_inactive"])
    async def test_revoked_errors(self, make_client: ClientFactory, error: str) -> None:
        client = make_client(lambda r: httpx.Response(200, json={"ok": False, "error": error}))

        with pytest.raises(AuthorizationRevokedError) as exc_info:
            await client.get_profile("xoxp", "U1")
        assert exc_info.value.error_code == error

    async def test_other_slack_error_is_provider_error(self, make_client: ClientFactory) -> None:
        client = make_client(
            lambda r: httpx.Response(200, json={"ok": False, "error": "too_long"})
        )

        with pytest.raises(ProviderError, match="too_long"):
            await client.set_profile("xoxp", "x", "")

    async def test_rate_limit_is_provider_error(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(429))

        with pytest.raises(ProviderError) as exc_info:
            await client.get_profile("xoxp", "U1")
        assert exc_info.value.status_code == 429

    async def test_missing_ok_flag_is_malformed(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(200, json={"profile": {}}))

        with pytest.raises(MalformedResponseError):
            await client.get_profile("xoxp", "U1")

    async def test_missing_profile_is_malformed(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(200, json={"ok": True}))

        with pytest.raises(MalformedResponseError):
            await client.get_profile("xoxp", "U1")


class TestExchangeCode:
    """Test oauth.v2.access."""

    async def test_returns_user_grant(self, make_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/oauth.v2.access"
            assert request.headers["Authorization"].startswith("Basic ")
            return httpx.Response(
                200,
                json={
                    "ok": True,
                    "access_token": "xoxb-1",
                    "team": {"id": "T1"},
                    "authed_user": {
                        "id": "U1",
                        "access_token": "xoxp-1",
                        "scope": "users.profile:read,users.profile:write",
                    },
                },
            )

        grant = await make_client(handler).exchange_code("code")

        assert grant.user_id == "U1"
        assert grant.access_token == "xoxp-1"
        assert grant.team_id == "T1"
        assert grant.bot_token == "xoxb-1"
        assert grant.scopes == ["users.profile:read", "users.profile:write"]

    async def test_missing_user_token_is_malformed(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(200, json={"ok": True}))

        with pytest.raises(MalformedResponseError):
            await client.exchange_code("code")
