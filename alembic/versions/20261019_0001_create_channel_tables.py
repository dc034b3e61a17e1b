# mypy: ignore-errors
"""
Migration Alembic pour créer les tables des channels et de leurs versions.

Crée organizations, channels (avec l'index dénormalisé `versions`), deployable_versions
(enregistrements chiffrés) et subscriptions, avec leurs contraintes d'unicité.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Applique la migration: crée les quatre tables et leurs index."""
    op.create_table(
        "organizations",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("org_keys", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "channels",
        sa.Column("uuid", sa.String(length=36), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("versions", sa.JSON(), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("org_id", "name", name="uq_channel_org_name"),
    )
    op.create_table(
        "deployable_versions",
        sa.Column("uuid", sa.String(length=36), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("channel_uuid", sa.String(length=36), nullable=False),
        sa.Column("channel_name", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("location", sa.String(length=32), nullable=False),
        sa.Column("content_blob", sa.LargeBinary(), nullable=True),
        sa.Column("content_url", sa.Text(), nullable=True),
        sa.Column("iv", sa.String(length=64), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "org_id", "channel_uuid", "name", name="uq_version_org_channel_name"
        ),
    )
    op.create_index(
        "ix_version_org_channel", "deployable_versions", ["org_id", "channel_uuid"]
    )
    op.create_table(
        "subscriptions",
        sa.Column("uuid", sa.String(length=36), primary_key=True),
        sa.Column("org_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("channel_uuid", sa.String(length=36), nullable=True),
        sa.Column("channel_name", sa.String(length=255), nullable=True),
        sa.Column("version_uuid", sa.String(length=36), nullable=True),
    )
    op.create_index(
        "ix_subscription_org_channel", "subscriptions", ["org_id", "channel_uuid"]
    )


def downgrade() -> None:
    """Annule la migration en supprimant les tables créées par upgrade."""
    op.drop_index("ix_subscription_org_channel", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_index("ix_version_org_channel", table_name="deployable_versions")
    op.drop_table("deployable_versions")
    op.drop_table("channels")
    op.drop_table("organizations")
