"""SQLAlchemy ORM models for statussync."""

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! UTC datetimes come back naive.
# Run every datetime read from the DB through this before comparing it with
# datetime.now(UTC), or you get "can't compare offset-naive and offset-aware".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TeamModel(Base):
    """Slack workspace that installed the app."""

    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)


# Listen up, one row per SPOTIFY account, keyed by the Spotify user id. That's what
# guarantees "at most one live credential per Spotify account": a second OAuth
# callback for the same account overwrites this row instead of adding another.
class SpotifyAccountModel(Base):
    """OAuth credential of a linked Spotify account."""

    __tablename__ = "spotify_accounts"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=utc_now,
    )


class SlackAccountModel(Base):
    """A Slack user of the app, optionally linked to a Spotify account."""

    __tablename__ = "slack_accounts"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    # Last status text WE wrote - the idempotence fast path compares against this
    status: Mapped[str | None] = mapped_column(Text, nullable=True)
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    spotify_id: Mapped[str | None] = mapped_column(
        String(128),
        ForeignKey("spotify_accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    team_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("teams.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, server_default=func.now()
    )
