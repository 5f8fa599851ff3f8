"""
Provenance registry domain: certificate lifecycle, artist profile claims,
provenance and ownership requests, accounts and notifications.
"""

from .enums import (
    CertificateStatus,
    CertificateType,
    NotificationType,
    ProfileClaimStatus,
    ProvenanceRequestStatus,
    ProvenanceRequestType,
    UserRole,
)

__all__ = [
    "CertificateStatus",
    "CertificateType",
    "NotificationType",
    "ProfileClaimStatus",
    "ProvenanceRequestStatus",
    "ProvenanceRequestType",
    "UserRole",
]
