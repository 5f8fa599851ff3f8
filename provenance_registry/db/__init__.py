"""
Database package for the Provenance Registry.
"""

from .base import Base, get_db, get_engine, get_session_local
from .audit_models import AuditLogModel
from .models import (
    AccountModel,
    ArtistProfileClaimModel,
    ArtistProfileModel,
    ArtworkModel,
    NotificationModel,
    ProvenanceUpdateRequestModel,
)

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_local",
    "AccountModel",
    "ArtistProfileClaimModel",
    "ArtistProfileModel",
    "ArtworkModel",
    "AuditLogModel",
    "NotificationModel",
    "ProvenanceUpdateRequestModel",
]
