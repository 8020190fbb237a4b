"""Per-user status reconciliation: Spotify playback -> Slack status.

Hey future me - this is ONE user's read-decide-write sequence. The worker calls
sync_user() for every connected user on every tick.

FLOW (per user):
1. Load credential + Slack token from the store (never cached between ticks, so
   tokens rotated by the refresh worker are picked up automatically)
2. Read playback from Spotify (204 = nothing playing = empty status)
3. format_status() -> candidate text
4. Same as the last text WE wrote? Done, no Slack call at all (idempotence)
5. Read the LIVE Slack status - the user may have changed it by hand
6. can_overwrite()? Write to Slack, then remember the text in the store
7. Any provider says "revoked"? Delete everything we have for that user

ERRORS:
- AuthorizationRevokedError -> teardown, outcome REVOKED
- ProviderError / MalformedResponseError -> outcome FAILED, nothing written
- Anything else (store errors) propagates; the worker isolates it per user
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from statussync.domain.exceptions import (
    AuthorizationRevokedError,
    MalformedResponseError,
    ProviderError,
)
from statussync.domain.ports import ICredentialStore, ISlackClient, ISpotifyClient
from statussync.domain.value_objects import can_overwrite, emoji_for, format_status

logger = logging.getLogger(__name__)


class SyncOutcome(str, Enum):
    """What happened to one user in one tick."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"
    BLOCKED = "blocked"
    SKIPPED = "skipped"
    REVOKED = "revoked"
    FAILED = "failed"


@dataclass
class UserSyncResult:
    """Result of syncing one user."""

    user_id: str
    outcome: SyncOutcome
    status_text: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """False only for failures."""
        return self.outcome != SyncOutcome.FAILED


class StatusSyncService:
    """Reconciles one user's Slack status with their Spotify playback."""

    def __init__(
        self,
        store: ICredentialStore,
        spotify: ISpotifyClient,
        slack: ISlackClient,
    ) -> None:
        """Initialize the service.

        Args:
            store: Credential store (tokens + last applied status)
            spotify: Spotify client
            slack: Slack client
        """
        self._store = store
        self._spotify = spotify
        self._slack = slack

    async def sync_user(self, user_id: str, now: datetime | None = None) -> UserSyncResult:
        """Run the read-decide-write sequence for one user.

        Args:
            user_id: Slack user id
            now: Current time (injectable for tests)

        Returns:
            UserSyncResult describing the outcome
        """
        now = now or datetime.now(UTC)

        credential = await self._store.get(user_id)
        if credential is None:
            logger.debug("status_sync.user.skipped", extra={"user_id": user_id, "reason": "no_spotify"})
            return UserSyncResult(user_id, SyncOutcome.SKIPPED, error="no_spotify")

        slack_token = await self._store.get_slack_token(user_id)
        if not slack_token:
            logger.debug("status_sync.user.skipped", extra={"user_id": user_id, "reason": "no_slack"})
            return UserSyncResult(user_id, SyncOutcome.SKIPPED, error="no_slack")

        # An expired token gives 401 too - that's the refresh worker's job, not a revocation
        if credential.is_expiring(now):
            logger.warning(
                "status_sync.user.skipped",
                extra={"user_id": user_id, "reason": "token_expired"},
            )
            return UserSyncResult(user_id, SyncOutcome.SKIPPED, error="token_expired")

        try:
            snapshot = await self._spotify.get_currently_playing(credential.access_token)
            intent = format_status(snapshot)

            last_status = await self._store.get_last_status(user_id) or ""
            if intent == last_status:
                return UserSyncResult(user_id, SyncOutcome.UNCHANGED, status_text=intent)

            profile = await self._slack.get_profile(slack_token, user_id)
            if not can_overwrite(profile):
                logger.debug(
                    "status_sync.user.blocked",
                    extra={"user_id": user_id, "current_emoji": profile.status_emoji},
                )
                return UserSyncResult(user_id, SyncOutcome.BLOCKED, status_text=intent)

            await self._slack.set_profile(slack_token, intent, emoji_for(intent))
            await self._store.set_last_status(user_id, intent)

        except AuthorizationRevokedError as e:
            logger.info(
                "status_sync.user.revoked",
                extra={"user_id": user_id, "provider": e.provider, "error_code": e.error_code},
            )
            await self._store.delete_all_data(user_id)
            return UserSyncResult(user_id, SyncOutcome.REVOKED, error=e.message)

        except (ProviderError, MalformedResponseError) as e:
            logger.warning(
                "status_sync.user.failed",
                extra={
                    "user_id": user_id,
                    "error": e.message,
                    "error_type": type(e).__name__,
                },
            )
            return UserSyncResult(user_id, SyncOutcome.FAILED, error=e.message)

        logger.info(
            "status_sync.user.updated",
            extra={"user_id": user_id, "status_text": intent},
        )
        return UserSyncResult(user_id, SyncOutcome.UPDATED, status_text=intent)
