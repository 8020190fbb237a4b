"""Spotify HTTP client for token exchange and playback reads."""

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from statussync.config.settings import SpotifySettings
from statussync.domain.entities import (
    PlaybackKind,
    PlaybackSnapshot,
    ShowInfo,
    TokenGrant,
)
from statussync.domain.exceptions import (
    AuthorizationRevokedError,
    ConfigurationError,
    MalformedResponseError,
    ProviderError,
)
from statussync.domain.ports import ISpotifyClient

logger = logging.getLogger(__name__)

PROVIDER = "spotify"


class SpotifyClient(ISpotifyClient):
    """HTTP client for the Spotify accounts service and Web API."""

    SCOPES = ("user-read-currently-playing",)

    # Hey future me, the httpx client is INJECTED (lifecycle owns it and closes it).
    # Its timeout is the process-wide I/O timeout, so a stalled Spotify call can hold
    # up one user for at most that long. If nobody passes a client we lazily create
    # one - handy for scripts, but then call close() yourself.
    def __init__(
        self,
        settings: SpotifySettings,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize Spotify client.

        Args:
            settings: Spotify configuration settings
            http_client: Shared AsyncClient (optional)
            timeout: Timeout for a lazily created client
        """
        self.settings = settings
        self._client = http_client
        self._owns_client = http_client is None
        self._timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def get_authorization_url(self, state: str) -> str:
        """
        Build the Spotify consent URL.

        Args:
            state: Slack user id, echoed back to the callback

        Returns:
            Authorization URL

        Raises:
            ConfigurationError: If client_id is not configured
        """
        if not self.settings.client_id.strip():
            raise ConfigurationError("SPOTIFY_CLIENT_ID is not configured")

        params = {
            "client_id": self.settings.client_id,
            "response_type": "code",
            "redirect_uri": self.settings.redirect_uri,
            "scope": " ".join(self.SCOPES),
            "state": state,
        }
        return f"{self.settings.auth_url}authorize?{urlencode(params)}"

    # Yo future me, ONE method for both grants - the token endpoint is the same, only
    # the form fields differ. Client credentials go in HTTP Basic auth, the body MUST be
    # form-urlencoded. Spotify says a refresh token is dead with 400 + invalid_grant;
    # that's a revocation, not a transient error, so it gets its own exception.
    async def exchange_token(
        self, code_or_refresh_token: str, is_refresh: bool
    ) -> TokenGrant:
        """
        Exchange an authorization code or refresh token for tokens.

        Args:
            code_or_refresh_token: Authorization code, or refresh token when is_refresh
            is_refresh: Use the refresh_token grant instead of authorization_code

        Returns:
            TokenGrant (refresh_token is None when Spotify did not rotate it)

        Raises:
            AuthorizationRevokedError: Refresh token or code rejected (400 invalid_grant)
            ProviderError: Network failure, client credentials rejected, or other status
            MalformedResponseError: Response lacks access_token or expires_in
        """
        if not self.settings.is_configured:
            raise ConfigurationError("Spotify client credentials are not configured")

        if is_refresh:
            data = {
                "grant_type": "refresh_token",
                "refresh_token": code_or_refresh_token,
            }
        else:
            data = {
                "grant_type": "authorization_code",
                "code": code_or_refresh_token,
                "redirect_uri": self.settings.redirect_uri,
            }

        try:
            response = await self._get_client().post(
                f"{self.settings.auth_url}api/token",
                data=data,
                auth=(self.settings.client_id, self.settings.client_secret),
            )
        except httpx.HTTPError as e:
            raise ProviderError(PROVIDER, f"token request failed: {e}") from e

        # Listen up - only invalid_grant is about THIS user's grant. 401/403 and
        # invalid_client mean our client credentials are wrong, which hits every
        # user at once; that must never look like a revocation (teardown).
        if response.status_code != 200:
            error_code = self._error_code(response)
            if response.status_code == 400 and error_code == "invalid_grant":
                raise AuthorizationRevokedError(
                    PROVIDER, "refresh token invalid or revoked", error_code=error_code
                )
            raise ProviderError(
                PROVIDER,
                f"token endpoint returned {response.status_code}"
                + (f" ({error_code})" if error_code else ""),
                status_code=response.status_code,
            )

        payload = self._json(response)
        try:
            return TokenGrant(
                access_token=str(payload["access_token"]),
                expires_in_seconds=int(payload["expires_in"]),
                refresh_token=payload.get("refresh_token") or None,
                scope=payload.get("scope"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                PROVIDER, f"token response missing field: {e}"
            ) from e

    # Hey future me, 204 No Content is NOT an error - it means nothing is playing or
    # the user is in a private session. additional_types=episode is needed or Spotify
    # returns item=null for podcasts.
    async def get_currently_playing(self, access_token: str) -> PlaybackSnapshot:
        """
        Read what the user is currently playing.

        Args:
            access_token: OAuth access token

        Returns:
            PlaybackSnapshot (not-playing for 204 or unsupported content)

        Raises:
            AuthorizationRevokedError: Access token rejected (401)
            ProviderError: Network failure or unexpected status
            MalformedResponseError: Body is not a currently-playing object
        """
        try:
            response = await self._get_client().get(
                f"{self.settings.api_url}me/player/currently-playing",
                params={"market": "from_token", "additional_types": "episode"},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise ProviderError(PROVIDER, f"currently-playing request failed: {e}") from e

        if response.status_code == 204 or (
            response.status_code == 200 and not response.content
        ):
            return PlaybackSnapshot.not_playing()
        if response.status_code == 401:
            raise AuthorizationRevokedError(PROVIDER, "access token rejected")
        if response.status_code != 200:
            raise ProviderError(
                PROVIDER,
                f"currently-playing returned {response.status_code}",
                status_code=response.status_code,
            )

        return self.parse_currently_playing(self._json(response))

    @staticmethod
    def parse_currently_playing(payload: dict[str, Any]) -> PlaybackSnapshot:
        """Turn a currently-playing JSON object into a snapshot."""
        if not isinstance(payload, dict):
            raise MalformedResponseError(PROVIDER, "currently-playing is not an object")

        item = payload.get("item")
        kind = payload.get("currently_playing_type")
        if item is None or kind not in (PlaybackKind.TRACK.value, PlaybackKind.EPISODE.value):
            return PlaybackSnapshot.not_playing()

        try:
            title = str(item["name"])
            if kind == PlaybackKind.TRACK.value:
                return PlaybackSnapshot(
                    is_playing=bool(payload.get("is_playing", False)),
                    kind=PlaybackKind.TRACK,
                    title=title,
                    artists=tuple(str(a["name"]) for a in item.get("artists") or []),
                )
            show = item.get("show")
            return PlaybackSnapshot(
                is_playing=bool(payload.get("is_playing", False)),
                kind=PlaybackKind.EPISODE,
                title=title,
                show=ShowInfo(name=str(show["name"]), publisher=str(show["publisher"]))
                if show
                else None,
            )
        except (KeyError, TypeError) as e:
            raise MalformedResponseError(
                PROVIDER, f"currently-playing item missing field: {e}"
            ) from e

    async def get_profile_id(self, access_token: str) -> str:
        """
        Get the Spotify account id behind a token.

        Args:
            access_token: OAuth access token

        Returns:
            Spotify user id

        Raises:
            AuthorizationRevokedError: Access token rejected (401)
            ProviderError: Network failure or unexpected status
            MalformedResponseError: Profile has no id
        """
        try:
            response = await self._get_client().get(
                f"{self.settings.api_url}me",
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise ProviderError(PROVIDER, f"profile request failed: {e}") from e

        if response.status_code == 401:
            raise AuthorizationRevokedError(PROVIDER, "access token rejected")
        if response.status_code != 200:
            raise ProviderError(
                PROVIDER,
                f"profile endpoint returned {response.status_code}",
                status_code=response.status_code,
            )

        profile_id = self._json(response).get("id")
        if not profile_id:
            raise MalformedResponseError(PROVIDER, "profile id is empty")
        return str(profile_id)

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(PROVIDER, "response is not JSON") from e
        if not isinstance(payload, dict):
            raise MalformedResponseError(PROVIDER, "response is not a JSON object")
        return payload

    @staticmethod
    def _error_code(response: httpx.Response) -> str:
        try:
            return str(response.json().get("error", ""))
        except (ValueError, AttributeError):
            return ""
