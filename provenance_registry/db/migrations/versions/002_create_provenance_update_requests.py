"""Create provenance update requests

Revision ID: 002_provenance_requests
Revises: 001_registry
Create Date: 2026-10-19

Requests to an artwork's owner for a provenance update or an ownership
transfer, with at most one pending request per (artwork, requester, type).
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "002_provenance_requests"
down_revision = "001_registry"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "provenance_update_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "artwork_id",
            sa.String(length=36),
            sa.ForeignKey("artworks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "requested_by",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column(
            "request_type",
            sa.Enum(
                "provenance_update", "ownership_request",
                name="provenance_request_type",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(
                "pending", "approved", "denied",
                name="provenance_request_status",
                create_constraint=True,
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("update_fields", sa.JSON, nullable=False),
        sa.Column("request_message", sa.Text, nullable=True),
        sa.Column(
            "reviewed_by",
            sa.String(length=36),
            sa.ForeignKey("accounts.id"),
            nullable=True,
        ),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_message", sa.Text, nullable=True),
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
    )
    op.create_index(
        "ix_provenance_update_requests_artwork_id",
        "provenance_update_requests",
        ["artwork_id"],
    )
    op.create_index(
        "ix_provenance_update_requests_requested_by",
        "provenance_update_requests",
        ["requested_by"],
    )
    # One open request per (artwork, requester, type)
    op.create_index(
        "uq_provenance_update_requests_pending",
        "provenance_update_requests",
        ["artwork_id", "requested_by", "request_type"],
        unique=True,
        sqlite_where=sa.text("status = 'pending'"),
        postgresql_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_table("provenance_update_requests")

    if op.get_bind().dialect.name == "postgresql":
        for enum_name in ("provenance_request_status", "provenance_request_type"):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
