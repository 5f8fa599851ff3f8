"""
Database services for the Provenance Registry.

These are the record stores consumed by the workflow layer. They do not make
authorization decisions. Methods that take ``commit`` let a workflow group a
state change and its audit entry into one commit.
"""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from ..registry.enums import (
    NotificationType,
    ProfileClaimStatus,
    ProvenanceRequestStatus,
    UserRole,
)
from ..registry.primitives import generate_ulid, utc_now
from ..registry.roles import with_role
from .models import (
    AccountModel,
    ArtistProfileClaimModel,
    ArtistProfileModel,
    ArtworkModel,
    NotificationModel,
    ProvenanceUpdateRequestModel,
)


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Session):
        self.db = db

    def create_account(
        self,
        name: str,
        email: Optional[str] = None,
        role: Optional[UserRole] = None,
        public_data: Optional[Dict[str, Any]] = None,
        account_id: Optional[str] = None,
    ) -> AccountModel:
        """Create an account. Without a role the account still needs onboarding."""
        data = dict(public_data or {})
        if role is not None:
            data = with_role(data, role)

        now = utc_now()
        db_account = AccountModel(
            id=account_id or generate_ulid(),
            name=name,
            email=email,
            public_data=data,
            created_at=now,
            updated_at=now,
        )

        self.db.add(db_account)
        self.db.commit()
        self.db.refresh(db_account)
        return db_account

    def get_account(self, account_id: str) -> Optional[AccountModel]:
        """Get an account by ID."""
        return self.db.query(AccountModel).filter(AccountModel.id == account_id).first()

    def find_by_name(self, name: str) -> List[AccountModel]:
        """Find accounts whose display name matches, ignoring case."""
        normalized = name.strip().lower()
        if not normalized:
            return []
        return (
            self.db.query(AccountModel)
            .filter(func.lower(AccountModel.name) == normalized)
            .order_by(AccountModel.created_at)
            .all()
        )

    def set_role(self, account_id: str, role: UserRole) -> Optional[AccountModel]:
        """Store a role in the account's attributes map."""
        account = self.get_account(account_id)
        if not account:
            return None

        account.public_data = with_role(account.public_data, role)
        account.updated_at = utc_now()

        self.db.commit()
        self.db.refresh(account)
        return account


class ArtworkService:
    """Service for managing artworks and their certificate fields."""

    def __init__(self, db: Session):
        self.db = db

    def create_artwork(self, commit: bool = True, **fields: Any) -> ArtworkModel:
        """Insert an artwork row. Certificate fields are decided by the caller."""
        now = utc_now()
        db_artwork = ArtworkModel(
            id=fields.pop("id", None) or generate_ulid(),
            created_at=now,
            updated_at=now,
            **fields,
        )

        self.db.add(db_artwork)
        if commit:
            self.db.commit()
            self.db.refresh(db_artwork)
        else:
            self.db.flush()
        return db_artwork

    def get_artwork(self, artwork_id: str) -> Optional[ArtworkModel]:
        """Get an artwork by ID."""
        return self.db.query(ArtworkModel).filter(ArtworkModel.id == artwork_id).first()

    def get_by_certificate_number(self, certificate_number: str) -> Optional[ArtworkModel]:
        """Get an artwork by certificate number."""
        return (
            self.db.query(ArtworkModel)
            .filter(ArtworkModel.certificate_number == certificate_number)
            .first()
        )

    def certificate_number_exists(self, certificate_number: str) -> bool:
        return (
            self.db.query(ArtworkModel.id)
            .filter(ArtworkModel.certificate_number == certificate_number)
            .first()
            is not None
        )

    def get_artworks(
        self,
        account_id: Optional[str] = None,
        artist_account_id: Optional[str] = None,
        certificate_status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ArtworkModel]:
        """Get artworks with optional filtering."""
        query = self.db.query(ArtworkModel)

        if account_id:
            query = query.filter(ArtworkModel.account_id == account_id)
        if artist_account_id:
            query = query.filter(ArtworkModel.artist_account_id == artist_account_id)
        if certificate_status:
            query = query.filter(ArtworkModel.certificate_status == certificate_status)

        return (
            query.order_by(desc(ArtworkModel.created_at))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def transition_certificate(
        self,
        artwork_id: str,
        expected_status: str,
        values: Dict[str, Any],
        expected_owner_id: Optional[str] = None,
    ) -> int:
        """
        Apply a certificate update only if the row is still in ``expected_status``.

        The precondition and the mutation run as one UPDATE statement, so two
        concurrent callers cannot both succeed. Nothing is committed here.

        Returns:
            Number of rows updated (0 or 1).
        """
        query = self.db.query(ArtworkModel).filter(
            ArtworkModel.id == artwork_id,
            ArtworkModel.certificate_status == expected_status,
        )
        if expected_owner_id is not None:
            query = query.filter(ArtworkModel.account_id == expected_owner_id)

        values = dict(values)
        values["updated_at"] = utc_now()
        return query.update(values, synchronize_session=False)

    def update_artwork(
        self,
        artwork_id: str,
        values: Dict[str, Any],
        expected_owner_id: Optional[str] = None,
    ) -> int:
        """
        Update descriptive fields or the owner, optionally only while
        ``expected_owner_id`` still owns the artwork. Nothing is committed.

        Returns:
            Number of rows updated (0 or 1).
        """
        query = self.db.query(ArtworkModel).filter(ArtworkModel.id == artwork_id)
        if expected_owner_id is not None:
            query = query.filter(ArtworkModel.account_id == expected_owner_id)

        values = dict(values)
        values["updated_at"] = utc_now()
        return query.update(values, synchronize_session=False)


class NotificationService:
    """Service for creating and reading notifications."""

    def __init__(self, db: Session):
        self.db = db

    def create_notification(
        self,
        user_id: str,
        type: str,
        title: str,
        message: Optional[str] = None,
        artwork_id: Optional[str] = None,
        related_user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> NotificationModel:
        """Create a notification for a user.

        Raises:
            ValueError: if ``type`` is not a known notification type
        """
        valid_types = {t.value for t in NotificationType}
        type_value = type.value if isinstance(type, NotificationType) else type
        if type_value not in valid_types:
            raise ValueError(
                f"Invalid notification type: {type_value}. Must be one of {sorted(valid_types)}"
            )

        notification = NotificationModel(
            id=generate_ulid(),
            user_id=user_id,
            type=type_value,
            title=title,
            message=message or None,
            artwork_id=artwork_id,
            related_user_id=related_user_id,
            metadata_=metadata or {},
            read=False,
            created_at=utc_now(),
        )

        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def get_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[NotificationModel]:
        """Get a user's notifications, newest first."""
        query = self.db.query(NotificationModel).filter(
            NotificationModel.user_id == user_id
        )
        if unread_only:
            query = query.filter(NotificationModel.read.is_(False))

        return (
            query.order_by(desc(NotificationModel.created_at), desc(NotificationModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def get_unread_count(self, user_id: str) -> int:
        return (
            self.db.query(func.count(NotificationModel.id))
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.read.is_(False),
            )
            .scalar()
            or 0
        )

    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        """
        Mark one notification read. Only the recipient can do this.

        Returns:
            True if the notification exists and belongs to ``user_id``.
            Marking an already-read notification is a no-op that still
            returns True.
        """
        notification = (
            self.db.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .first()
        )
        if not notification:
            return False

        if not notification.read:
            notification.read = True
            self.db.commit()
        return True

    def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification of a user read. Returns the count changed."""
        updated = (
            self.db.query(NotificationModel)
            .filter(
                NotificationModel.user_id == user_id,
                NotificationModel.read.is_(False),
            )
            .update({"read": True}, synchronize_session=False)
        )
        self.db.commit()
        return updated


class ArtistProfileService:
    """Service for artist profiles and the claims made against them."""

    def __init__(self, db: Session):
        self.db = db

    # Profiles

    def create_profile(
        self,
        name: str,
        medium: Optional[str] = None,
        bio: Optional[str] = None,
        created_by_gallery_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ArtistProfileModel:
        """Create an artist profile. Profiles without ``user_id`` are unclaimed."""
        now = utc_now()
        profile = ArtistProfileModel(
            id=generate_ulid(),
            name=name,
            medium=medium,
            bio=bio,
            user_id=user_id,
            is_claimed=user_id is not None,
            claimed_at=now if user_id else None,
            created_by_gallery_id=created_by_gallery_id,
            created_at=now,
            updated_at=now,
        )

        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def get_profile(self, profile_id: str) -> Optional[ArtistProfileModel]:
        return (
            self.db.query(ArtistProfileModel)
            .filter(ArtistProfileModel.id == profile_id)
            .first()
        )

    def get_profile_for_user(self, user_id: str) -> Optional[ArtistProfileModel]:
        """Get the artist profile linked to an account, if any."""
        return (
            self.db.query(ArtistProfileModel)
            .filter(ArtistProfileModel.user_id == user_id)
            .first()
        )

    def get_unclaimed_profiles(self, limit: int = 100) -> List[ArtistProfileModel]:
        return (
            self.db.query(ArtistProfileModel)
            .filter(
                ArtistProfileModel.is_claimed.is_(False),
                ArtistProfileModel.user_id.is_(None),
            )
            .order_by(desc(ArtistProfileModel.created_at))
            .limit(limit)
            .all()
        )

    def link_profile(self, profile_id: str, user_id: str) -> int:
        """
        Link an unclaimed profile to an artist account.

        Conditional on the profile still being unclaimed. Nothing is committed.

        Returns:
            Number of rows updated (0 or 1).
        """
        now = utc_now()
        return (
            self.db.query(ArtistProfileModel)
            .filter(
                ArtistProfileModel.id == profile_id,
                ArtistProfileModel.is_claimed.is_(False),
                ArtistProfileModel.user_id.is_(None),
            )
            .update(
                {
                    "user_id": user_id,
                    "is_claimed": True,
                    "claimed_at": now,
                    "updated_at": now,
                },
                synchronize_session=False,
            )
        )

    # Claims

    def create_claim(
        self,
        profile_id: str,
        artist_user_id: str,
        gallery_id: str,
        message: Optional[str] = None,
    ) -> ArtistProfileClaimModel:
        """Create a pending claim. Raises IntegrityError on a duplicate pending claim."""
        now = utc_now()
        claim = ArtistProfileClaimModel(
            id=generate_ulid(),
            profile_id=profile_id,
            artist_user_id=artist_user_id,
            gallery_id=gallery_id,
            status=ProfileClaimStatus.PENDING.value,
            message=message,
            created_at=now,
            updated_at=now,
        )

        self.db.add(claim)
        self.db.commit()
        self.db.refresh(claim)
        return claim

    def get_claim(self, claim_id: str) -> Optional[ArtistProfileClaimModel]:
        return (
            self.db.query(ArtistProfileClaimModel)
            .filter(ArtistProfileClaimModel.id == claim_id)
            .first()
        )

    def get_claims(
        self,
        profile_id: Optional[str] = None,
        artist_user_id: Optional[str] = None,
        gallery_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ArtistProfileClaimModel]:
        """Get claims with optional filtering, newest first."""
        query = self.db.query(ArtistProfileClaimModel)

        if profile_id:
            query = query.filter(ArtistProfileClaimModel.profile_id == profile_id)
        if artist_user_id:
            query = query.filter(ArtistProfileClaimModel.artist_user_id == artist_user_id)
        if gallery_id:
            query = query.filter(ArtistProfileClaimModel.gallery_id == gallery_id)
        if statuses:
            query = query.filter(ArtistProfileClaimModel.status.in_(list(statuses)))

        return (
            query.order_by(desc(ArtistProfileClaimModel.created_at), desc(ArtistProfileClaimModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def resolve_claim(
        self,
        claim_id: str,
        status: ProfileClaimStatus,
        gallery_response: Optional[str] = None,
    ) -> int:
        """
        Move a pending claim to approved/rejected. Nothing is committed.

        Returns:
            Number of rows updated (0 if the claim was no longer pending).
        """
        return (
            self.db.query(ArtistProfileClaimModel)
            .filter(
                ArtistProfileClaimModel.id == claim_id,
                ArtistProfileClaimModel.status == ProfileClaimStatus.PENDING.value,
            )
            .update(
                {
                    "status": status.value,
                    "gallery_response": gallery_response,
                    "updated_at": utc_now(),
                },
                synchronize_session=False,
            )
        )


class ProvenanceRequestService:
    """Service for provenance update and ownership requests."""

    def __init__(self, db: Session):
        self.db = db

    def create_request(
        self,
        artwork_id: str,
        requested_by: str,
        request_type: str,
        update_fields: Optional[Dict[str, Any]] = None,
        request_message: Optional[str] = None,
        commit: bool = True,
    ) -> ProvenanceUpdateRequestModel:
        """Create a pending request. Raises IntegrityError on a duplicate pending request."""
        now = utc_now()
        request = ProvenanceUpdateRequestModel(
            id=generate_ulid(),
            artwork_id=artwork_id,
            requested_by=requested_by,
            request_type=request_type,
            status=ProvenanceRequestStatus.PENDING.value,
            update_fields=update_fields or {},
            request_message=request_message,
            created_at=now,
            updated_at=now,
        )

        self.db.add(request)
        if commit:
            self.db.commit()
            self.db.refresh(request)
        else:
            self.db.flush()
        return request

    def get_request(self, request_id: str) -> Optional[ProvenanceUpdateRequestModel]:
        return (
            self.db.query(ProvenanceUpdateRequestModel)
            .filter(ProvenanceUpdateRequestModel.id == request_id)
            .first()
        )

    def get_requests(
        self,
        artwork_id: Optional[str] = None,
        requested_by: Optional[str] = None,
        request_type: Optional[str] = None,
        owner_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ProvenanceUpdateRequestModel]:
        """Get requests with optional filtering, newest first.

        ``owner_id`` matches requests on artworks that account currently owns.
        """
        query = self.db.query(ProvenanceUpdateRequestModel)

        if owner_id:
            query = query.join(
                ArtworkModel, ArtworkModel.id == ProvenanceUpdateRequestModel.artwork_id
            ).filter(ArtworkModel.account_id == owner_id)
        if artwork_id:
            query = query.filter(ProvenanceUpdateRequestModel.artwork_id == artwork_id)
        if requested_by:
            query = query.filter(ProvenanceUpdateRequestModel.requested_by == requested_by)
        if request_type:
            query = query.filter(ProvenanceUpdateRequestModel.request_type == request_type)
        if statuses:
            query = query.filter(ProvenanceUpdateRequestModel.status.in_(list(statuses)))

        return (
            query.order_by(
                desc(ProvenanceUpdateRequestModel.created_at),
                desc(ProvenanceUpdateRequestModel.id),
            )
            .offset(offset)
            .limit(limit)
            .all()
        )

    def resolve_request(
        self,
        request_id: str,
        status: ProvenanceRequestStatus,
        reviewed_by: str,
        review_message: Optional[str] = None,
    ) -> int:
        """
        Move a pending request to approved/denied. Nothing is committed.

        Returns:
            Number of rows updated (0 if the request was no longer pending).
        """
        now = utc_now()
        return (
            self.db.query(ProvenanceUpdateRequestModel)
            .filter(
                ProvenanceUpdateRequestModel.id == request_id,
                ProvenanceUpdateRequestModel.status == ProvenanceRequestStatus.PENDING.value,
            )
            .update(
                {
                    "status": status.value,
                    "reviewed_by": reviewed_by,
                    "reviewed_at": now,
                    "review_message": review_message,
                    "updated_at": now,
                },
                synchronize_session=False,
            )
        )
