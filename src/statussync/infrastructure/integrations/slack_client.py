"""Slack HTTP client for reading and writing user status."""

import logging
from typing import Any

import httpx

from statussync.config.settings import SlackSettings
from statussync.domain.entities import SlackGrant, SlackProfile
from statussync.domain.exceptions import (
    AuthorizationRevokedError,
    ConfigurationError,
    MalformedResponseError,
    ProviderError,
)
from statussync.domain.ports import ISlackClient

logger = logging.getLogger(__name__)

PROVIDER = "slack"

# Slack error codes that mean "this token is gone for good"
REVOKED_ERRORS = frozenset({"token_revoked", "invalid_auth", "account_inactive"})


class SlackClient(ISlackClient):
    """HTTP client for the Slack Web API (users.profile.* and oauth.v2.access)."""

    def __init__(
        self,
        settings: SlackSettings,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        """
        Initialize Slack client.

        Args:
            settings: Slack configuration settings
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

    # Hey future me, Slack answers 200 for almost everything and puts the real result
    # in {"ok": false, "error": "..."}. So we can't just raise_for_status() - the ok
    # flag is what matters. Rate limits are the exception: those come as HTTP 429.
    async def _call(
        self,
        method: str,
        endpoint: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self._get_client().request(
                method, f"{self.settings.api_url}{endpoint}", headers=headers, **kwargs
            )
        except httpx.HTTPError as e:
            raise ProviderError(PROVIDER, f"{endpoint} request failed: {e}") from e

        if response.status_code != 200:
            raise ProviderError(
                PROVIDER,
                f"{endpoint} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError(PROVIDER, f"{endpoint} response is not JSON") from e
        if not isinstance(payload, dict) or "ok" not in payload:
            raise MalformedResponseError(PROVIDER, f"{endpoint} response has no ok flag")

        if not payload["ok"]:
            error = str(payload.get("error") or "unknown_error")
            if error in REVOKED_ERRORS:
                raise AuthorizationRevokedError(PROVIDER, error, error_code=error)
            raise ProviderError(PROVIDER, f"{endpoint} reported {error}")

        return payload

    async def get_profile(self, token: str, user_id: str) -> SlackProfile:
        """
        Read the user's live status fields.

        Args:
            token: User OAuth token
            user_id: Slack user id

        Returns:
            SlackProfile with status text, emoji and expiration

        Raises:
            AuthorizationRevokedError: Token revoked
            ProviderError: Network failure or Slack error
            MalformedResponseError: No profile in the response
        """
        payload = await self._call(
            "GET", "users.profile.get", token=token, params={"user": user_id}
        )
        profile = payload.get("profile")
        if not isinstance(profile, dict):
            raise MalformedResponseError(PROVIDER, "users.profile.get returned no profile")

        try:
            return SlackProfile(
                status_text=str(profile.get("status_text") or ""),
                status_emoji=str(profile.get("status_emoji") or ""),
                status_expiration=int(profile.get("status_expiration") or 0),
            )
        except (TypeError, ValueError) as e:
            raise MalformedResponseError(
                PROVIDER, f"unexpected status_expiration: {e}"
            ) from e

    async def set_profile(self, token: str, status_text: str, status_emoji: str) -> None:
        """
        Write the user's status.

        Args:
            token: User OAuth token
            status_text: New status text ("" clears it)
            status_emoji: New status emoji ("" clears it)

        Raises:
            AuthorizationRevokedError: Token revoked
            ProviderError: Network failure or Slack error
        """
        await self._call(
            "POST",
            "users.profile.set",
            token=token,
            json={
                "profile": {
                    "status_text": status_text,
                    "status_emoji": status_emoji,
                    "status_expiration": 0,
                }
            },
        )

    async def exchange_code(self, code: str) -> SlackGrant:
        """
        Exchange a Slack OAuth code for the user token.

        Args:
            code: Authorization code from the Slack redirect

        Returns:
            SlackGrant with the authed user's id, token and team

        Raises:
            ConfigurationError: Slack client credentials are missing
            ProviderError: Slack rejected the code
            MalformedResponseError: No user token in the response
        """
        if not self.settings.client_id or not self.settings.client_secret:
            raise ConfigurationError("Slack client credentials are not configured")

        payload = await self._call(
            "POST",
            "oauth.v2.access",
            data={"code": code, "redirect_uri": self.settings.redirect_uri},
            auth=(self.settings.client_id, self.settings.client_secret),
        )

        authed_user = payload.get("authed_user") or {}
        user_id = authed_user.get("id")
        access_token = authed_user.get("access_token")
        if not user_id or not access_token:
            raise MalformedResponseError(PROVIDER, "oauth.v2.access returned no user token")

        scope = authed_user.get("scope") or ""
        return SlackGrant(
            user_id=str(user_id),
            access_token=str(access_token),
            team_id=(payload.get("team") or {}).get("id"),
            bot_token=payload.get("access_token"),
            scopes=[s for s in scope.split(",") if s],
        )
