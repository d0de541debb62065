"""Create artist_profiles, integration_accounts and media_items tables.

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19

Hey future me - this is the baseline schema. Two unique constraints carry the whole
integration model: ONE linked account per (owner_id, platform), and ONE media row per
(external_id, owner_id). The media upsert's ON CONFLICT clause targets the second one,
so don't rename its columns without updating MediaItemRepository.upsert.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the integration tables."""
    op.create_table(
        "artist_profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "integration_accounts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("platform", sa.String(20), nullable=False),
        sa.Column("external_account_id", sa.String(128), nullable=False),
        sa.Column("external_display_name", sa.String(255), nullable=False),
        sa.Column("access_token", sa.Text, nullable=False),
        sa.Column("refresh_token", sa.Text, nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("connected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_valid", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("refresh_failures", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("last_error_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_refreshed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "owner_id", "platform", name="uq_integration_owner_platform"
        ),
    )
    # Expiry scans (tokens about to run out)
    op.create_index(
        "ix_integration_accounts_expires",
        "integration_accounts",
        ["token_expires_at"],
        unique=False,
    )

    op.create_table(
        "media_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("external_id", sa.String(128), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("source_url", sa.String(1024), nullable=False),
        sa.Column("thumbnail_url", sa.String(1024), nullable=True),
        sa.Column("duration_seconds", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "duration_formatted", sa.String(16), nullable=False, server_default="0:00"
        ),
        sa.Column("view_count", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_short", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("source_platform", sa.String(20), nullable=False),
        sa.Column(
            "approval_state", sa.String(20), nullable=False, server_default="approved"
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "external_id", "owner_id", name="uq_media_items_natural_key"
        ),
    )
    op.create_index(
        "ix_media_items_owner_short", "media_items", ["owner_id", "is_short"], unique=False
    )
    op.create_index(
        "ix_media_items_published", "media_items", ["published_at"], unique=False
    )


def downgrade() -> None:
    """Drop the integration tables."""
    op.drop_index("ix_media_items_published", table_name="media_items")
    op.drop_index("ix_media_items_owner_short", table_name="media_items")
    op.drop_table("media_items")
    op.drop_index(
        "ix_integration_accounts_expires", table_name="integration_accounts"
    )
    op.drop_table("integration_accounts")
    op.drop_table("artist_profiles")
