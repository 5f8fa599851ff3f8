"""
Certificate lifecycle engine.

Moves an artwork's certificate through::

    pending_artist_claim --claim--> pending_verification --verify--> verified

Artists posting their own work skip straight to ``verified``. The legality of
every step is decided by ``policy.certificate_gate``; this module loads the
rows, applies the change with a conditional update, writes the audit entry in
the same commit and then notifies the counterparty.

All public methods return an ``OperationResult``. The only exception that
escapes is ``CertificateNumberError`` from ``create_artwork``.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.audit_service import AuditService
from ..db.models import AccountModel, ArtworkModel
from ..db.services import ArtworkService, NotificationService
from ..policy.certificate_gate import (
    NOT_CLAIMABLE,
    NOT_VERIFIABLE,
    check_claim_role,
    check_claim_status,
    check_verify_owner,
    check_verify_role,
    check_verify_status,
    initial_certificate,
)
from .certificates import CertificateNumberGenerator
from .enums import CertificateType, NotificationType, UserRole
from .primitives import utc_now
from .results import (
    LifecycleError,
    OperationResult,
    conflict,
    invalid_state,
    not_found,
)
from .schemas import ArtworkCreate
from .workflow import RegistryWorkflow

logger = structlog.get_logger()

ENTITY_KIND = "Artwork"


class CertificateLifecycle(RegistryWorkflow):
    """Creates artworks and runs the claim / verify transitions."""

    def __init__(
        self,
        db: Session,
        audit: Optional[AuditService] = None,
        notifications: Optional[NotificationService] = None,
        number_generator: Optional[CertificateNumberGenerator] = None,
    ):
        super().__init__(db, audit=audit, notifications=notifications)
        self.artworks = ArtworkService(db)
        self.number_generator = number_generator or CertificateNumberGenerator(db)

    # Creation

    def create_artwork(
        self, data: ArtworkCreate, acting_account_id: Optional[str]
    ) -> OperationResult:
        """Post an artwork with the certificate state implied by the poster's role."""
        try:
            artwork = self._create(data, acting_account_id)
        except LifecycleError as e:
            logger.warning(
                "Artwork creation rejected",
                account_id=acting_account_id,
                reason=e.message,
            )
            return OperationResult.fail(e)

        return OperationResult.ok(artwork=artwork.to_dict())

    def _create(self, data: ArtworkCreate, acting_account_id: Optional[str]) -> ArtworkModel:
        account = self._require_account(acting_account_id)
        initial = initial_certificate(account.resolved_role.role)

        certificate_number = self.number_generator.generate()

        artist_name = data.artist_name
        artist_account_id = None
        hinted_artist: Optional[AccountModel] = None

        if initial.self_authenticated:
            artist_account_id = account.id
            artist_name = artist_name or account.name
        elif artist_name:
            hinted_artist = self._match_artist(artist_name)
            if hinted_artist:
                artist_account_id = hinted_artist.id

        try:
            artwork = self.artworks.create_artwork(
                commit=False,
                account_id=account.id,
                artist_account_id=artist_account_id,
                title=data.title,
                description=data.description,
                artist_name=artist_name,
                medium=data.medium,
                certificate_number=certificate_number,
                certificate_type=initial.certificate_type.value,
                certificate_status=initial.certificate_status.value,
            )
            self.audit.log_create(
                entity_kind=ENTITY_KIND,
                entity_id=artwork.id,
                after=artwork.to_dict(),
                actor_id=account.id,
                commit=False,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise conflict("Certificate number was taken concurrently, please retry")

        self.db.refresh(artwork)
        logger.info(
            "Artwork created",
            artwork_id=artwork.id,
            certificate_number=artwork.certificate_number,
            certificate_status=artwork.certificate_status,
            certificate_type=artwork.certificate_type,
            artist_hint=artist_account_id if hinted_artist else None,
        )

        if hinted_artist:
            self._notify(
                user_id=hinted_artist.id,
                type=NotificationType.CERTIFICATE_CLAIM_REQUEST,
                title=f"Certificate Claim Request: {artwork.title}",
                message=(
                    f'{account.name or "A registry member"} posted "{artwork.title}" '
                    "crediting you as the artist. Claim the certificate to start verification."
                ),
                artwork_id=artwork.id,
                related_user_id=account.id,
                metadata={"certificateNumber": artwork.certificate_number},
            )

        return artwork

    def _match_artist(self, artist_name: str) -> Optional[AccountModel]:
        """First artist account whose name matches, ignoring case."""
        for candidate in self.accounts.find_by_name(artist_name):
            if candidate.resolved_role.is_(UserRole.ARTIST):
                return candidate
        return None

    # Claim

    def claim_certificate(
        self, artwork_id: str, acting_account_id: Optional[str]
    ) -> OperationResult:
        """Artist claims the certificate of an artwork posted by a collector or gallery."""
        try:
            artwork = self._claim(artwork_id, acting_account_id)
        except LifecycleError as e:
            logger.warning(
                "Certificate claim rejected",
                artwork_id=artwork_id,
                account_id=acting_account_id,
                reason=e.message,
            )
            return OperationResult.fail(e)

        return OperationResult.ok(artwork=artwork.to_dict())

    def _claim(self, artwork_id: str, acting_account_id: Optional[str]) -> ArtworkModel:
        account = self._require_account(acting_account_id)
        check_claim_role(account.resolved_role.role)

        artwork = self.artworks.get_artwork(artwork_id)
        if not artwork:
            raise not_found("Artwork not found")
        target = check_claim_status(artwork.certificate_status)

        old_status = artwork.certificate_status
        updated = self.artworks.transition_certificate(
            artwork_id,
            expected_status=old_status,
            values={
                "artist_account_id": account.id,
                "claimed_by_artist_at": utc_now(),
                "certificate_status": target.value,
            },
        )
        if updated != 1:
            # Another claim landed between the read and the update
            self.db.rollback()
            raise invalid_state(NOT_CLAIMABLE)

        self.audit.log_status_change(
            entity_kind=ENTITY_KIND,
            entity_id=artwork_id,
            old_status=old_status,
            new_status=target.value,
            actor_id=account.id,
            note=f"Claimed by artist {account.id}",
            commit=False,
        )
        self.db.commit()
        self.db.refresh(artwork)

        logger.info(
            "Certificate claimed",
            artwork_id=artwork.id,
            artist_account_id=account.id,
            certificate_number=artwork.certificate_number,
        )

        self._notify(
            user_id=artwork.account_id,
            type=NotificationType.CERTIFICATE_CLAIMED,
            title=f"Certificate Claimed: {artwork.title}",
            message=(
                f'{account.name or "An artist"} has claimed the certificate for '
                f'"{artwork.title}". Please verify the claim.'
            ),
            artwork_id=artwork.id,
            related_user_id=account.id,
            metadata={
                "certificateNumber": artwork.certificate_number,
                "artistName": account.name,
            },
        )
        return artwork

    # Verify

    def verify_certificate(
        self, artwork_id: str, acting_account_id: Optional[str]
    ) -> OperationResult:
        """Poster confirms the artist's claim, finalizing the certificate."""
        try:
            artwork = self._verify(artwork_id, acting_account_id)
        except LifecycleError as e:
            logger.warning(
                "Certificate verification rejected",
                artwork_id=artwork_id,
                account_id=acting_account_id,
                reason=e.message,
            )
            return OperationResult.fail(e)

        return OperationResult.ok(artwork=artwork.to_dict())

    def _verify(self, artwork_id: str, acting_account_id: Optional[str]) -> ArtworkModel:
        account = self._require_account(acting_account_id)
        check_verify_role(account.resolved_role.role)

        artwork = self.artworks.get_artwork(artwork_id)
        if not artwork:
            raise not_found("Artwork not found")
        check_verify_owner(account.id, artwork.account_id)
        target = check_verify_status(artwork.certificate_status)

        old_status = artwork.certificate_status
        updated = self.artworks.transition_certificate(
            artwork_id,
            expected_status=old_status,
            expected_owner_id=account.id,
            values={
                "verified_by_owner_at": utc_now(),
                "certificate_status": target.value,
                "certificate_type": CertificateType.AUTHENTICITY.value,
            },
        )
        if updated != 1:
            self.db.rollback()
            raise invalid_state(NOT_VERIFIABLE)

        self.audit.log_status_change(
            entity_kind=ENTITY_KIND,
            entity_id=artwork_id,
            old_status=old_status,
            new_status=target.value,
            actor_id=account.id,
            note=f"Verified by owner {account.id}",
            commit=False,
        )
        self.db.commit()
        self.db.refresh(artwork)

        logger.info(
            "Certificate verified",
            artwork_id=artwork.id,
            owner_account_id=account.id,
            artist_account_id=artwork.artist_account_id,
        )

        if artwork.artist_account_id:
            self._notify(
                user_id=artwork.artist_account_id,
                type=NotificationType.CERTIFICATE_VERIFIED,
                title=f"Certificate Verified: {artwork.title}",
                message=(
                    f'{account.name or "The owner"} has verified the certificate for '
                    f'"{artwork.title}".'
                ),
                artwork_id=artwork.id,
                related_user_id=account.id,
                metadata={"certificateNumber": artwork.certificate_number},
            )
        return artwork
