"""Create registry tables

Revision ID: 001_registry
Revises:
Create Date: 2026-10-19

Accounts, artworks with their certificate state, notifications, artist
profiles and claims, and the audit log. On PostgreSQL also installs the
generate_certificate_number() function used for new certificates.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "001_registry"
down_revision = None
branch_labels = None
depends_on = None


CERTIFICATE_NUMBER_FUNCTION = """
CREATE OR REPLACE FUNCTION generate_certificate_number() RETURNS text AS $$
DECLARE
    alphabet constant text := '0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ';
    candidate text;
    i integer;
BEGIN
    LOOP
        candidate := 'PROV-';
        FOR i IN 1..8 LOOP
            candidate := candidate || substr(alphabet, 1 + floor(random() * 36)::integer, 1);
        END LOOP;
        EXIT WHEN NOT EXISTS (
            SELECT 1 FROM artworks WHERE certificate_number = candidate
        );
    END LOOP;
    RETURN candidate;
END;
$$ LANGUAGE plpgsql VOLATILE;
"""


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True, unique=True),
        sa.Column("picture_url", sa.String(length=2000), nullable=True),
        # role and admin flag live here
        sa.Column("public_data", sa.JSON, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_accounts_name", "accounts", ["name"])

    op.create_table(
        "artworks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "account_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column(
            "artist_account_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=True,
        ),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("artist_name", sa.String(length=255), nullable=True),
        sa.Column("medium", sa.String(length=255), nullable=True),
        sa.Column("certificate_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column(
            "certificate_type",
            sa.Enum(
                "authenticity", "show", "ownership",
                name="certificate_type",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column(
            "certificate_status",
            sa.Enum(
                "pending_artist_claim", "pending_verification", "verified",
                name="certificate_status",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("claimed_by_artist_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by_owner_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_artworks_account_id", "artworks", ["account_id"])
    op.create_index("ix_artworks_artist_account_id", "artworks", ["artist_account_id"])
    op.create_index("ix_artworks_artist_name", "artworks", ["artist_name"])
    op.create_index("ix_artworks_certificate_status", "artworks", ["certificate_status"])
    op.create_index(
        "ix_artworks_account_status", "artworks", ["account_id", "certificate_status"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column(
            "artwork_id",
            sa.String(length=36),
            sa.ForeignKey("artworks.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column(
            "related_user_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=True,
        ),
        sa.Column("metadata", sa.JSON, nullable=False),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_type", "notifications", ["type"])
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "read"])
    op.create_index(
        "ix_notifications_user_created", "notifications", ["user_id", "created_at"]
    )

    op.create_table(
        "artist_profiles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("medium", sa.String(length=255), nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column(
            "user_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=True,
        ),
        sa.Column("is_claimed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_by_gallery_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_artist_profiles_name", "artist_profiles", ["name"])
    op.create_index("ix_artist_profiles_user_id", "artist_profiles", ["user_id"])
    op.create_index(
        "ix_artist_profiles_created_by_gallery_id",
        "artist_profiles",
        ["created_by_gallery_id"],
    )

    op.create_table(
        "artist_profile_claims",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "profile_id",
            sa.String(length=36),
            sa.ForeignKey("artist_profiles.id"),
            nullable=False,
        ),
        sa.Column(
            "artist_user_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column(
            "gallery_id",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "approved", "rejected",
                name="artist_profile_claim_status",
                create_constraint=True,
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("gallery_response", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_artist_profile_claims_profile_id", "artist_profile_claims", ["profile_id"]
    )
    op.create_index(
        "ix_artist_profile_claims_artist_user_id",
        "artist_profile_claims",
        ["artist_user_id"],
    )
    op.create_index(
        "ix_artist_profile_claims_gallery_id", "artist_profile_claims", ["gallery_id"]
    )
    # One open claim per (profile, artist)
    op.create_index(
        "uq_artist_profile_claims_pending",
        "artist_profile_claims",
        ["profile_id", "artist_user_id"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "ts",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "actor_kind",
            sa.Enum(
                "human", "system",
                name="audit_actor_kind",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column(
            "action",
            sa.Enum(
                "created", "updated", "status_changed", "linked",
                name="audit_action",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("entity_kind", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
        sa.Column("before", sa.JSON, nullable=True),
        sa.Column("after", sa.JSON, nullable=True),
        sa.Column("note", sa.Text, nullable=True),
    )
    op.create_index("ix_audit_log_ts", "audit_log", ["ts"])
    op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_entity_kind", "audit_log", ["entity_kind"])
    op.create_index("ix_audit_log_entity_id", "audit_log", ["entity_id"])
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_kind", "entity_id"])
    op.create_index("ix_audit_log_actor", "audit_log", ["actor_kind", "actor_id"])
    op.create_index(
        "ix_audit_log_entity_ts", "audit_log", ["entity_kind", "entity_id", "ts"]
    )

    if op.get_bind().dialect.name == "postgresql":
        op.execute(CERTIFICATE_NUMBER_FUNCTION)


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP FUNCTION IF EXISTS generate_certificate_number()")

    op.drop_table("audit_log")
    op.drop_table("artist_profile_claims")
    op.drop_table("artist_profiles")
    op.drop_table("notifications")
    op.drop_table("artworks")
    op.drop_table("accounts")

    if op.get_bind().dialect.name == "postgresql":
        for enum_name in (
            "audit_action",
            "audit_actor_kind",
            "artist_profile_claim_status",
            "certificate_status",
            "certificate_type",
        ):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
