"""SQLAlchemy implementation of the credential store."""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statussync.domain.entities import ProviderCredential
from statussync.domain.exceptions import EntityNotFoundException
from statussync.domain.ports import ICredentialStore

from .models import SlackAccountModel, SpotifyAccountModel, TeamModel, ensure_utc_aware

logger = logging.getLogger(__name__)


# Hey future me, every public method opens its OWN session + transaction. There is no
# long-lived session shared between workers - that's what makes the per-row writes
# atomic without a lock between the refresh worker (writes tokens) and the sync worker
# (writes status). Don't "optimize" this into one session per tick: a failing user
# would roll back everybody else's status writes.
class SqlCredentialStore(ICredentialStore):
    """Credential store backed by the slack_accounts / spotify_accounts tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize store with a session factory."""
        self._session_factory = session_factory

    async def get(self, user_id: str) -> ProviderCredential | None:
        """Get the Spotify credential linked to a Slack user."""
        async with self._session_factory() as session:
            stmt = (
                select(SpotifyAccountModel)
                .join(
                    SlackAccountModel,
                    SlackAccountModel.spotify_id == SpotifyAccountModel.id,
                )
                .where(SlackAccountModel.id == user_id)
            )
            model = (await session.execute(stmt)).scalar_one_or_none()

        if model is None:
            return None
        return ProviderCredential(
            spotify_id=model.id,
            access_token=model.access_token,
            refresh_token=model.refresh_token,
            expires_at=ensure_utc_aware(model.expires_at),
        )

    # Listen up - UPSERT by Spotify account id. OAuth callback and token refresh both
    # land here; the refresh path already merged in the old refresh token when Spotify
    # didn't rotate it, so we always write exactly what we're given.
    async def upsert(
        self,
        spotify_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> None:
        """Create or overwrite the credential for a Spotify account."""
        expires_at = ensure_utc_aware(expires_at)
        async with self._session_factory() as session, session.begin():
            model = await session.get(SpotifyAccountModel, spotify_id)
            if model is None:
                session.add(
                    SpotifyAccountModel(
                        id=spotify_id,
                        access_token=access_token,
                        refresh_token=refresh_token,
                        expires_at=expires_at,
                        updated_at=datetime.now(UTC),
                    )
                )
            else:
                model.access_token = access_token
                model.refresh_token = refresh_token
                model.expires_at = expires_at

    # The refresh path must not resurrect a credential that a concurrent teardown
    # just deleted, so this is UPDATE-only (upsert would re-insert an orphan row).
    async def update_credential(
        self,
        spotify_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> bool:
        """Overwrite an existing credential; False if the row is gone."""
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(SpotifyAccountModel)
                .where(SpotifyAccountModel.id == spotify_id)
                .values(
                    access_token=access_token,
                    refresh_token=refresh_token,
                    expires_at=ensure_utc_aware(expires_at),
                    updated_at=datetime.now(UTC),
                )
            )
            return result.rowcount > 0

    async def list_expiring_before(self, instant: datetime) -> list[str]:
        """List Slack user ids whose Spotify token expires at or before ``instant``."""
        async with self._session_factory() as session:
            stmt = (
                select(SlackAccountModel.id)
                .join(
                    SpotifyAccountModel,
                    SlackAccountModel.spotify_id == SpotifyAccountModel.id,
                )
                .where(SpotifyAccountModel.expires_at <= ensure_utc_aware(instant))
                .order_by(SpotifyAccountModel.expires_at)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def list_connected_users(self) -> list[str]:
        """List users with both a Slack token and a linked Spotify account."""
        async with self._session_factory() as session:
            stmt = (
                select(SlackAccountModel.id)
                .where(
                    SlackAccountModel.access_token.is_not(None),
                    SlackAccountModel.spotify_id.is_not(None),
                )
                .order_by(SlackAccountModel.id)
            )
            return list((await session.execute(stmt)).scalars().all())

    async def get_last_status(self, user_id: str) -> str | None:
        """Get the status text we last wrote for the user."""
        async with self._session_factory() as session:
            stmt = select(SlackAccountModel.status).where(SlackAccountModel.id == user_id)
            return (await session.execute(stmt)).scalar_one_or_none()

    async def set_last_status(self, user_id: str, status: str) -> None:
        """Remember the status text we just wrote.

        Raises:
            EntityNotFoundException: The user row no longer exists
        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(SlackAccountModel)
                .where(SlackAccountModel.id == user_id)
                .values(status=status)
            )
            if result.rowcount == 0:
                raise EntityNotFoundException("SlackAccount", user_id)

    async def delete_all_data(self, user_id: str) -> None:
        """Remove the user, their credential and their last status."""
        async with self._session_factory() as session, session.begin():
            spotify_id = (
                await session.execute(
                    select(SlackAccountModel.spotify_id).where(
                        SlackAccountModel.id == user_id
                    )
                )
            ).scalar_one_or_none()

            await session.execute(
                delete(SlackAccountModel).where(SlackAccountModel.id == user_id)
            )
            if spotify_id is not None:
                await session.execute(
                    delete(SpotifyAccountModel).where(SpotifyAccountModel.id == spotify_id)
                )

        logger.info(
            "credential_store.user_deleted",
            extra={"user_id": user_id, "had_spotify": spotify_id is not None},
        )

    async def ensure_user(self, user_id: str) -> None:
        """Create the user record if it does not exist yet."""
        async with self._session_factory() as session, session.begin():
            if await session.get(SlackAccountModel, user_id) is None:
                session.add(SlackAccountModel(id=user_id))

    async def link_spotify(self, user_id: str, spotify_id: str) -> None:
        """Tie a Slack user to a stored Spotify credential.

        Raises:
            EntityNotFoundException: The user row does not exist
        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(SlackAccountModel)
                .where(SlackAccountModel.id == user_id)
                .values(spotify_id=spotify_id)
            )
            if result.rowcount == 0:
                raise EntityNotFoundException("SlackAccount", user_id)

    async def unlink_spotify(self, user_id: str) -> None:
        """Detach and delete the user's Spotify credential, keeping the user."""
        async with self._session_factory() as session, session.begin():
            model = await session.get(SlackAccountModel, user_id)
            if model is None or model.spotify_id is None:
                return
            spotify_id = model.spotify_id
            model.spotify_id = None
            await session.flush()
            await session.execute(
                delete(SpotifyAccountModel).where(SpotifyAccountModel.id == spotify_id)
            )

    async def get_slack_token(self, user_id: str) -> str | None:
        """Get the user's Slack token."""
        async with self._session_factory() as session:
            stmt = select(SlackAccountModel.access_token).where(
                SlackAccountModel.id == user_id
            )
            return (await session.execute(stmt)).scalar_one_or_none()

    async def set_slack_token(
        self, user_id: str, token: str, team_id: str | None = None
    ) -> None:
        """Store the user's Slack token, creating user and team rows as needed."""
        async with self._session_factory() as session, session.begin():
            if team_id is not None and await session.get(TeamModel, team_id) is None:
                session.add(TeamModel(id=team_id))
                await session.flush()

            model = await session.get(SlackAccountModel, user_id)
            if model is None:
                session.add(
                    SlackAccountModel(id=user_id, access_token=token, team_id=team_id)
                )
            else:
                model.access_token = token
                if team_id is not None:
                    model.team_id = team_id

    async def ensure_team(self, team_id: str) -> None:
        """Create the team record if it does not exist yet."""
        async with self._session_factory() as session, session.begin():
            if await session.get(TeamModel, team_id) is None:
                session.add(TeamModel(id=team_id))

    async def set_team_token(self, team_id: str, token: str) -> None:
        """Store the workspace (bot) token for a team.

        Raises:
            EntityNotFoundException: The team row does not exist
        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(TeamModel).where(TeamModel.id == team_id).values(access_token=token)
            )
            if result.rowcount == 0:
                raise EntityNotFoundException("Team", team_id)

    async def delete_team(self, team_id: str) -> None:
        """Remove a team record and its bot token; its users stay."""
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(SlackAccountModel)
                .where(SlackAccountModel.team_id == team_id)
                .values(team_id=None)
            )
            await session.execute(delete(TeamModel).where(TeamModel.id == team_id))

        logger.info("credential_store.team_deleted", extra={"team_id": team_id})
