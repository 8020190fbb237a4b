"""Tests for SpotifyClient with pytest-httpx."""

from collections.abc import Callable
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from pytest_httpx import HTTPXMock

from statussync.config import SpotifySettings
from statussync.domain.entities import PlaybackKind
from statussync.domain.exceptions import (
    AuthorizationRevokedError,
    ConfigurationError,
    MalformedResponseError,
    ProviderError,
)
from statussync.infrastructure.integrations import SpotifyClient

Handler = Callable[[httpx.Request], httpx.Response]
ClientFactory = Callable[[Handler], SpotifyClient]


@pytest.fixture
def settings() -> SpotifySettings:
    return SpotifySettings(
        client_id="cid",
        client_secret="secret",
        redirect_uri="http://localhost/callback",
    )


@pytest.fixture
def make_client(settings: SpotifySettings, httpx_mock: HTTPXMock) -> ClientFactory:
    def factory(handler: Handler) -> SpotifyClient:
        httpx_mock.add_callback(handler)
        return SpotifyClient(settings, http_client=httpx.AsyncClient())

    return factory


TRACK_PAYLOAD = {
    "is_playing": True,
    "currently_playing_type": "track",
    "item": {"name": "Song", "artists": [{"name": "A"}, {"name": "B"}]},
}

EPISODE_PAYLOAD = {
    "is_playing": True,
    "currently_playing_type": "episode",
    "item": {"name": "Ep 1", "show": {"name": "Show", "publisher": "Pub"}},
}


class TestExchangeToken:
    """Test the token endpoint."""

    async def test_refresh_grant_sends_form_and_basic_auth(
        self, make_client: ClientFactory
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "A2", "expires_in": 3600})

        grant = await make_client(handler).exchange_token("R1", is_refresh=True)

        assert grant.access_token == "A2"
        assert grant.expires_in_seconds == 3600
        assert grant.refresh_token is None
        request = seen[0]
        assert request.url == "https://accounts.spotify.com/api/token"
        assert request.headers["Authorization"].startswith("Basic ")
        form = parse_qs(request.content.decode())
        assert form == {"grant_type": ["refresh_token"], "refresh_token": ["R1"]}

    async def test_code_grant_returns_refresh_token(self, make_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            form = parse_qs(request.content.decode())
            assert form["grant_type"] == ["authorization_code"]
            assert form["redirect_uri"] == ["http://localhost/callback"]
            return httpx.Response(
                200,
                json={"access_token": "A1", "expires_in": 3600, "refresh_token": "R1"},
            )

        grant = await make_client(handler).exchange_token("code", is_refresh=False)

        assert grant.refresh_token == "R1"

    async def test_invalid_grant_is_revocation(self, make_client: ClientFactory) -> None:
        client = make_client(
            lambda r: httpx.Response(400, json={"error": "invalid_grant"})
        )

        with pytest.raises(AuthorizationRevokedError) as exc_info:
            await client.exchange_token("R1", is_refresh=True)
        assert exc_info.value.error_code == "invalid_grant"

    @pytest.mark.parametrize(
        ("status", "body"),
        [
            (401, {"error": "invalid_client"}),
            (400, {"error": "invalid_client"}),
            (403, {}),
        ],
    )
    async def test_client_auth_failure_is_not_revocation(
        self, make_client: ClientFactory, status: int, body: dict
    ) -> None:
        client = make_client(lambda r: httpx.Response(status, json=body))

        with pytest.raises(ProviderError) as exc_info:
            await client.exchange_token("R1", is_refresh=True)
        assert not isinstance(exc_info.value, AuthorizationRevokedError)
        assert exc_info.value.status_code == status

    async def test_server_error_is_provider_error(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(503))

        with pytest.raises(ProviderError) as exc_info:
            await client.exchange_token("R1", is_refresh=True)
        assert exc_info.value.status_code == 503

    async def test_missing_fields_is_malformed(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(200, json={"token_type": "Bearer"}))

        with pytest.raises(MalformedResponseError):
            await client.exchange_token("R1", is_refresh=True)

    async def test_network_error_is_provider_error(self, make_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError):
            await make_client(handler).exchange_token("R1", is_refresh=True)

    async def test_unconfigured_client_raises(self) -> None:
        client = SpotifyClient(SpotifySettings(client_id="", client_secret=""), http_client=httpx.AsyncClient())

        with pytest.raises(ConfigurationError):
            await client.exchange_token("R1", is_refresh=True)


class TestCurrentlyPlaying:
    """Test the currently-playing read."""

    async def test_track(self, make_client: ClientFactory) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer tok"
            assert request.url.params["additional_types"] == "episode"
            return httpx.Response(200, json=TRACK_PAYLOAD)

        snapshot = await make_client(handler).get_currently_playing("tok")

        assert snapshot.kind == PlaybackKind.TRACK
        assert snapshot.title == "Song"
        assert snapshot.artists == ("A", "B")
        assert snapshot.is_playing is True

    async def test_episode(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(200, json=EPISODE_PAYLOAD))

        snapshot = await client.get_currently_playing("tok")

        assert snapshot.kind == PlaybackKind.EPISODE
        assert snapshot.show is not None
        assert snapshot.show.publisher == "Pub"

    async def test_no_content_means_not_playing(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(204))

        snapshot = await client.get_currently_playing("tok")

        assert snapshot.is_playing is False

    async def test_unknown_type_means_not_playing(self, make_client: ClientFactory) -> None:
        payload = {"is_playing": True, "currently_playing_type": "ad", "item": None}
        client = make_client(lambda r: httpx.Response(200, json=payload))

        snapshot = await client.get_currently_playing("tok")

        assert snapshot.kind == PlaybackKind.NONE

    async def test_unauthorized_is_revocation(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(401))

        with pytest.raises(AuthorizationRevokedError):
            await client.get_currently_playing("tok")

    async def test_rate_limited_is_provider_error(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(429))

        with pytest.raises(ProviderError):
            await client.get_currently_playing("tok")

    async def test_item_without_name_is_malformed(self, make_client: ClientFactory) -> None:
        payload = {"is_playing": True, "currently_playing_type": "track", "item": {"artists": []}}
        client = make_client(lambda r: httpx.Response(200, json=payload))

        with pytest.raises(MalformedResponseError):
            await client.get_currently_playing("tok")

    async def test_non_json_body_is_malformed(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(200, content=b"<html>"))

        with pytest.raises(MalformedResponseError):
            await client.get_currently_playing("tok")


class TestProfileAndAuthorizeUrl:
    """Test profile lookup and the consent URL."""

    async def test_profile_id(self, make_client: ClientFactory) -> None:
        client = make_client(lambda r: httpx.Response(200, json={"id": "sp1"}))

        assert await client.get_profile_id("tok") == "sp1"

    def test_authorization_url(self, settings: SpotifySettings) -> None:
        url = SpotifyClient(settings).get_authorization_url(state="U1")

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.netloc == "accounts.spotify.com"
        assert parsed.path == "/authorize"
        assert query["state"] == ["U1"]
        assert query["scope"] == ["user-read-currently-playing"]
        assert query["client_id"] == ["cid"]
