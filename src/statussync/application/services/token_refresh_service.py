"""Proactive Spotify token refresh.

Hey future me - Spotify access tokens live ~1 hour. The TokenRefreshWorker calls
refresh_expiring() every 15 minutes and renews everything expiring in the next
20 minutes. The lookahead MUST be bigger than both the sync interval and the
refresh interval (settings enforce that), so no token dies between two refresh
cycles or mid-tick.

Two rules that matter:
- Spotify only SOMETIMES sends a new refresh_token. If it doesn't, keep the old one
  verbatim - dropping it would lock the user out at the next refresh.
- One broken user must not stop the others. A revoked refresh token (invalid_grant)
  is final, so that user is torn down exactly like the sync path does it. Anything
  else (network blip, 5xx) lands in report.failed and is retried next cycle.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from statussync.domain.exceptions import AuthorizationRevokedError, EntityNotFoundException
from statussync.domain.ports import ICredentialStore, ISpotifyClient

logger = logging.getLogger(__name__)


@dataclass
class RefreshReport:
    """Outcome of one refresh cycle."""

    refreshed: list[str] = field(default_factory=list)
    revoked: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        """Number of users that were due."""
        return len(self.refreshed) + len(self.revoked) + len(self.failed)


class TokenRefreshService:
    """Renews Spotify credentials before they expire."""

    def __init__(
        self,
        store: ICredentialStore,
        spotify: ISpotifyClient,
        lookahead: timedelta = timedelta(minutes=20),
    ) -> None:
        """Initialize the service.

        Args:
            store: Credential store
            spotify: Spotify client (token endpoint)
            lookahead: Refresh tokens expiring within this window
        """
        self._store = store
        self._spotify = spotify
        self._lookahead = lookahead

    async def refresh_user(self, user_id: str, now: datetime | None = None) -> None:
        """Exchange the stored refresh token and persist the new credential.

        Args:
            user_id: Slack user id
            now: Current time (injectable for tests)

        Raises:
            EntityNotFoundException: The user has no linked credential, or it was
                deleted before the new tokens could be stored
            AuthorizationRevokedError: Spotify rejected the refresh token
            ProviderError: Transient token endpoint failure
        """
        now = now or datetime.now(UTC)

        credential = await self._store.get(user_id)
        if credential is None:
            raise EntityNotFoundException("ProviderCredential", user_id)

        grant = await self._spotify.exchange_token(credential.refresh_token, is_refresh=True)

        # The user may have been torn down while the token request was in flight
        updated = await self._store.update_credential(
            spotify_id=credential.spotify_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or credential.refresh_token,
            expires_at=grant.expires_at(now),
        )
        if not updated:
            raise EntityNotFoundException("ProviderCredential", credential.spotify_id)

        logger.debug(
            "token_refresh.user.refreshed",
            extra={
                "user_id": user_id,
                "rotated": grant.refresh_token is not None,
                "expires_in": grant.expires_in_seconds,
            },
        )

    async def refresh_expiring(self, now: datetime | None = None) -> RefreshReport:
        """Refresh every credential expiring within the lookahead window.

        Store errors while listing users propagate (nothing can be done this cycle);
        per-user errors are caught and reported.

        Args:
            now: Current time (injectable for tests)

        Returns:
            RefreshReport with refreshed, revoked and failed user ids
        """
        now = now or datetime.now(UTC)
        report = RefreshReport()

        user_ids = await self._store.list_expiring_before(now + self._lookahead)
        for user_id in user_ids:
            try:
                await self.refresh_user(user_id, now=now)
            except EntityNotFoundException:
                # Disconnected since the listing; nothing left to refresh
                logger.debug("token_refresh.user.gone", extra={"user_id": user_id})
                continue
            except AuthorizationRevokedError as e:
                logger.info(
                    "token_refresh.user.revoked",
                    extra={"user_id": user_id, "error_code": e.error_code},
                )
                try:
                    await self._store.delete_all_data(user_id)
                except Exception as cleanup_error:
                    report.failed[user_id] = f"{type(cleanup_error).__name__}: {cleanup_error}"
                    logger.warning(
                        "token_refresh.user.teardown_failed",
                        extra={"user_id": user_id},
                        exc_info=True,
                    )
                    continue
                report.revoked.append(user_id)
                continue
            except Exception as e:
                # Do not let one user block the batch - log and retry next cycle
                report.failed[user_id] = f"{type(e).__name__}: {e}"
                logger.warning(
                    "token_refresh.user.failed",
                    extra={"user_id": user_id, "error_type": type(e).__name__},
                    exc_info=True,
                )
                continue
            report.refreshed.append(user_id)

        return report
