"""
SQLAlchemy models for the Provenance Registry.
"""

from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.sql import func

from ..registry.roles import is_admin, resolve_role
from .base import Base


certificate_type_enum = Enum(
    "authenticity", "show", "ownership", name="certificate_type"
)

certificate_status_enum = Enum(
    "pending_artist_claim",
    "pending_verification",
    "verified",
    name="certificate_status",
)

profile_claim_status_enum = Enum(
    "pending", "approved", "rejected", name="artist_profile_claim_status"
)

provenance_request_type_enum = Enum(
    "provenance_update", "ownership_request", name="provenance_request_type"
)

provenance_request_status_enum = Enum(
    "pending", "approved", "denied", name="provenance_request_status"
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class AccountModel(Base):
    """A registry account. Role and admin flag live in ``public_data``."""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(320), nullable=True, unique=True)
    picture_url = Column(String(2000), nullable=True)

    # Free-form attributes map; read through registry.roles only
    public_data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    @property
    def resolved_role(self):
        return resolve_role(self.public_data)

    @property
    def is_admin(self) -> bool:
        return is_admin(self.public_data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        role = self.resolved_role.role
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "picture_url": self.picture_url,
            "role": role.value if role else None,
            "is_admin": self.is_admin,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ArtworkModel(Base):
    """An artwork and its certificate."""

    __tablename__ = "artworks"

    id = Column(String(36), primary_key=True)

    # Poster and credited artist
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    artist_account_id = Column(
        String(36), ForeignKey("accounts.id"), nullable=True, index=True
    )

    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    artist_name = Column(String(255), nullable=True, index=True)
    medium = Column(String(255), nullable=True)

    # Certificate
    certificate_number = Column(String(64), nullable=False, unique=True)
    certificate_type = Column(certificate_type_enum, nullable=False)
    certificate_status = Column(certificate_status_enum, nullable=False, index=True)

    # Transition audit trail; set once, never cleared
    claimed_by_artist_at = Column(DateTime(timezone=True), nullable=True)
    verified_by_owner_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        Index("ix_artworks_account_status", "account_id", "certificate_status"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "account_id": self.account_id,
            "artist_account_id": self.artist_account_id,
            "title": self.title,
            "description": self.description,
            "artist_name": self.artist_name,
            "medium": self.medium,
            "certificate_number": self.certificate_number,
            "certificate_type": self.certificate_type,
            "certificate_status": self.certificate_status,
            "claimed_by_artist_at": _iso(self.claimed_by_artist_at),
            "verified_by_owner_at": _iso(self.verified_by_owner_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class NotificationModel(Base):
    """Append-only message addressed to one account. Only ``read`` changes."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    type = Column(String(64), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    message = Column(Text, nullable=True)
    artwork_id = Column(
        String(36), ForeignKey("artworks.id", ondelete="CASCADE"), nullable=True
    )
    related_user_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=False, default=dict)
    read = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "read"),
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "artwork_id": self.artwork_id,
            "related_user_id": self.related_user_id,
            "metadata": self.metadata_,
            "read": self.read,
            "created_at": _iso(self.created_at),
        }


class ArtistProfileModel(Base):
    """Artist identity record, possibly created by a gallery before the artist joined."""

    __tablename__ = "artist_profiles"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    medium = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)

    user_id = Column(String(36), ForeignKey("accounts.id"), nullable=True, index=True)
    is_claimed = Column(Boolean, nullable=False, default=False)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    created_by_gallery_id = Column(
        String(36), ForeignKey("accounts.id"), nullable=True, index=True
    )

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "medium": self.medium,
            "bio": self.bio,
            "user_id": self.user_id,
            "is_claimed": self.is_claimed,
            "claimed_at": _iso(self.claimed_at),
            "created_by_gallery_id": self.created_by_gallery_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ArtistProfileClaimModel(Base):
    """An artist's request to take over an unclaimed profile."""

    __tablename__ = "artist_profile_claims"

    id = Column(String(36), primary_key=True)
    profile_id = Column(
        String(36), ForeignKey("artist_profiles.id"), nullable=False, index=True
    )
    artist_user_id = Column(
        String(36), ForeignKey("accounts.id"), nullable=False, index=True
    )
    gallery_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    status = Column(profile_claim_status_enum, nullable=False, default="pending")
    message = Column(Text, nullable=True)
    gallery_response = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        # One open claim per (profile, artist)
        Index(
            "uq_artist_profile_claims_pending",
            "profile_id",
            "artist_user_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "profile_id": self.profile_id,
            "artist_user_id": self.artist_user_id,
            "gallery_id": self.gallery_id,
            "status": self.status,
            "message": self.message,
            "gallery_response": self.gallery_response,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ProvenanceUpdateRequestModel(Base):
    """
    A request to the artwork's owner: change provenance fields, or hand over
    ownership to the credited artist.

    The reviewer is whoever owns the artwork at review time; no owner is
    stored on the request.
    """

    __tablename__ = "provenance_update_requests"

    id = Column(String(36), primary_key=True)
    artwork_id = Column(
        String(36),
        ForeignKey("artworks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requested_by = Column(
        String(36), ForeignKey("accounts.id"), nullable=False, index=True
    )
    request_type = Column(provenance_request_type_enum, nullable=False)
    status = Column(provenance_request_status_enum, nullable=False, default="pending")

    # Field name -> requested value; empty for ownership requests
    update_fields = Column(JSON, nullable=False, default=dict)
    request_message = Column(Text, nullable=True)

    reviewed_by = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        # One open request per (artwork, requester, type)
        Index(
            "uq_provenance_update_requests_pending",
            "artwork_id",
            "requested_by",
            "request_type",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "artwork_id": self.artwork_id,
            "requested_by": self.requested_by,
            "request_type": self.request_type,
            "status": self.status,
            "update_fields": self.update_fields or {},
            "request_message": self.request_message,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": _iso(self.reviewed_at),
            "review_message": self.review_message,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
