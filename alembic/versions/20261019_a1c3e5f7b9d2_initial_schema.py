"""initial schema - teams, spotify_accounts, slack_accounts

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19 12:00:00.000000

Hey future me - one row per Spotify ACCOUNT (not per Slack user). Two Slack
users can point at the same Spotify account; deleting the Spotify row nulls
their spotify_id instead of deleting them.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c3e5f7b9d2"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "teams",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("access_token", sa.Text(), nullable=True),
    )

    op.create_table(
        "spotify_accounts",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("access_token", sa.Text(), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_spotify_accounts_expires_at", "spotify_accounts", ["expires_at"]
    )

    op.create_table(
        "slack_accounts",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("status", sa.Text(), nullable=True),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column(
            "spotify_id",
            sa.String(length=128),
            sa.ForeignKey("spotify_accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "team_id",
            sa.String(length=32),
            sa.ForeignKey("teams.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_slack_accounts_spotify_id", "slack_accounts", ["spotify_id"])


def downgrade() -> None:
    op.drop_index("ix_slack_accounts_spotify_id", table_name="slack_accounts")
    op.drop_table("slack_accounts")
    op.drop_index("ix_spotify_accounts_expires_at", table_name="spotify_accounts")
    op.drop_table("spotify_accounts")
    op.drop_table("teams")
