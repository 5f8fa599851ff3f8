"""
Canonical enums for the registry.

Values are persisted as plain strings; these enums are the allowed sets.
"""

from enum import Enum


class UserRole(str, Enum):
    """Account roles. Absence of a role means onboarding is not complete."""

    ARTIST = "artist"
    COLLECTOR = "collector"
    GALLERY = "gallery"


class CertificateType(str, Enum):
    """What a certificate attests to."""

    AUTHENTICITY = "authenticity"
    SHOW = "show"
    OWNERSHIP = "ownership"


class CertificateStatus(str, Enum):
    """Certificate lifecycle states, in forward order."""

    PENDING_ARTIST_CLAIM = "pending_artist_claim"
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"


class ProfileClaimStatus(str, Enum):
    """Status of an artist profile claim request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProvenanceRequestType(str, Enum):
    """What a provenance request asks the artwork owner for."""

    PROVENANCE_UPDATE = "provenance_update"
    OWNERSHIP_REQUEST = "ownership_request"


class ProvenanceRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class NotificationType(str, Enum):
    """Notification type tags."""

    CERTIFICATE_CLAIM_REQUEST = "certificate_claim_request"
    CERTIFICATE_CLAIMED = "certificate_claimed"
    CERTIFICATE_VERIFIED = "certificate_verified"
    CERTIFICATE_REJECTED = "certificate_rejected"
    ARTWORK_UPDATED = "artwork_updated"
    ARTIST_PROFILE_CLAIM_REQUEST = "artist_profile_claim_request"
    ARTIST_PROFILE_CLAIM_APPROVED = "artist_profile_claim_approved"
    ARTIST_PROFILE_CLAIM_REJECTED = "artist_profile_claim_rejected"
    PROVENANCE_UPDATE_REQUEST = "provenance_update_request"
    PROVENANCE_UPDATE_APPROVED = "provenance_update_approved"
    PROVENANCE_UPDATE_DENIED = "provenance_update_denied"
    OWNERSHIP_REQUEST = "ownership_request"
    OWNERSHIP_APPROVED = "ownership_approved"
    OWNERSHIP_DENIED = "ownership_denied"
    MESSAGE = "message"


class ActorKind(str, Enum):
    """Who performed an audited action."""

    HUMAN = "human"
    SYSTEM = "system"
