"""Account linking and disconnect flows.

Hey future me - these are the OAuth callback bodies without the HTTP layer. The
Slack side comes first (that's where the user id comes from), then the user is
sent to Spotify with their Slack user id as the OAuth ``state`` and comes back
with a code we exchange here.
"""

import logging

from statussync.domain.entities import SlackGrant
from statussync.domain.exceptions import MalformedResponseError
from statussync.domain.ports import ICredentialStore, ISlackClient, ISpotifyClient

logger = logging.getLogger(__name__)


class AccountService:
    """Connects and disconnects users."""

    def __init__(
        self,
        store: ICredentialStore,
        spotify: ISpotifyClient,
        slack: ISlackClient,
    ) -> None:
        self._store = store
        self._spotify = spotify
        self._slack = slack

    async def ensure_user(self, user_id: str) -> None:
        """Create the user record on first interaction."""
        await self._store.ensure_user(user_id)

    def spotify_authorization_url(self, user_id: str) -> str:
        """Consent URL for linking Spotify; the Slack user id travels as ``state``."""
        return self._spotify.get_authorization_url(state=user_id)

    async def complete_slack_link(self, code: str) -> SlackGrant:
        """Finish the Slack OAuth flow and store the user token.

        Args:
            code: OAuth code from the Slack redirect

        Returns:
            The grant (carries the Slack user id for the next step)

        Raises:
            AuthorizationRevokedError: Slack rejected the code
            ProviderError: Slack API failure
        """
        grant = await self._slack.exchange_code(code)
        if grant.team_id:
            await self._store.ensure_team(grant.team_id)
            if grant.bot_token:
                await self._store.set_team_token(grant.team_id, grant.bot_token)
        await self._store.set_slack_token(grant.user_id, grant.access_token, team_id=grant.team_id)

        logger.info(
            "account.slack_linked",
            extra={"user_id": grant.user_id, "team_id": grant.team_id},
        )
        return grant

    async def complete_spotify_link(self, user_id: str, code: str) -> str:
        """Finish the Spotify OAuth flow for a Slack user.

        Exchanges the code, resolves the Spotify account id, stores the
        credential and links it to the user.

        Args:
            user_id: Slack user id (the OAuth state)
            code: OAuth code from the Spotify redirect

        Returns:
            The linked Spotify account id

        Raises:
            MalformedResponseError: The code exchange returned no refresh token
            AuthorizationRevokedError: Spotify rejected the code
            ProviderError: Spotify API failure
            EntityNotFoundException: The Slack user does not exist
        """
        grant = await self._spotify.exchange_token(code, is_refresh=False)
        # Without a refresh token we could never renew this credential
        if not grant.refresh_token:
            raise MalformedResponseError("spotify", "authorization code grant without refresh_token")

        spotify_id = await self._spotify.get_profile_id(grant.access_token)

        await self._store.upsert(
            spotify_id=spotify_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=grant.expires_at(),
        )
        await self._store.link_spotify(user_id, spotify_id)

        logger.info(
            "account.spotify_linked",
            extra={"user_id": user_id, "spotify_id": spotify_id},
        )
        return spotify_id

    async def disconnect_spotify(self, user_id: str) -> None:
        """Drop only the Spotify link; the Slack side stays connected."""
        await self._store.unlink_spotify(user_id)
        logger.info("account.spotify_unlinked", extra={"user_id": user_id})

    async def disconnect(self, user_id: str) -> None:
        """Forget the user completely."""
        await self._store.delete_all_data(user_id)
        logger.info("account.disconnected", extra={"user_id": user_id})

    # Listen up - this is Slack's tokens_revoked event. Every listed user token is
    # dead, so those users are forgotten like a normal disconnect. A revoked bot token
    # means the app was removed from the workspace: the team row and its token go too.
    async def handle_tokens_revoked(
        self,
        team_id: str | None,
        user_ids: list[str],
        bot_revoked: bool = False,
    ) -> None:
        """Tear down users (and the team) whose Slack tokens were revoked.

        Args:
            team_id: Workspace the event came from
            user_ids: Slack users whose user tokens were revoked
            bot_revoked: True if the workspace bot token was revoked as well
        """
        for user_id in user_ids:
            await self._store.delete_all_data(user_id)

        if bot_revoked and team_id:
            await self._store.delete_team(team_id)

        logger.info(
            "account.tokens_revoked",
            extra={"team_id": team_id, "users": len(user_ids), "bot_revoked": bot_revoked},
        )
