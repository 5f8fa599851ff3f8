"""
Provenance update and ownership request workflow.

Anyone other than the owner may ask to correct an artwork's provenance
fields. The artist credited on an artwork may ask its owner to hand it over.
Either request moves ``pending -> approved | denied`` once, decided by whoever
owns the artwork at review time.

Approval applies the change with a conditional update on the current owner,
so a request approved after the artwork changed hands does nothing.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError

from ..db.models import AccountModel, ArtworkModel, ProvenanceUpdateRequestModel
from ..db.services import ArtworkService, ProvenanceRequestService
from .enums import (
    NotificationType,
    ProvenanceRequestStatus,
    ProvenanceRequestType,
    UserRole,
)
from .results import (
    LifecycleError,
    OperationResult,
    conflict,
    forbidden,
    invalid_state,
    not_found,
)
from .schemas import ProvenanceRequestCreate
from .workflow import RegistryWorkflow

logger = structlog.get_logger()

ENTITY_KIND = "ProvenanceUpdateRequest"

# Artwork columns a provenance update may write
EDITABLE_FIELDS = ("title", "description", "artist_name", "medium")

NO_PERMISSION = "You do not have permission to review this request"


def _label(request_type: str) -> str:
    if request_type == ProvenanceRequestType.OWNERSHIP_REQUEST.value:
        return "ownership"
    return "update"


class ProvenanceRequests(RegistryWorkflow):
    """Files provenance and ownership requests and runs the owner's review."""

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.requests = ProvenanceRequestService(db)
        self.artworks = ArtworkService(db)

    # Read helpers

    def list_requests_for_owner(
        self, owner_id: str, status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Requests on artworks the account owns, with artwork and requester names."""
        requests = self.requests.get_requests(
            owner_id=owner_id, statuses=[status] if status else None
        )
        results = []
        for request in requests:
            entry = self._with_artwork(request)
            requester = self.accounts.get_account(request.requested_by)
            entry["requester"] = {
                "id": request.requested_by,
                "name": requester.name if requester else "Unknown User",
            }
            results.append(entry)
        return results

    def list_requests_by_requester(
        self, account_id: str, status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Requests the account has filed, with artwork titles."""
        requests = self.requests.get_requests(
            requested_by=account_id, statuses=[status] if status else None
        )
        return [self._with_artwork(r) for r in requests]

    def _with_artwork(self, request: ProvenanceUpdateRequestModel) -> Dict[str, Any]:
        artwork = self.artworks.get_artwork(request.artwork_id)
        entry = request.to_dict()
        entry["artwork"] = {
            "id": request.artwork_id,
            "title": artwork.title if artwork else "Unknown Artwork",
        }
        return entry

    # Request

    def create_request(
        self,
        artwork_id: str,
        data: ProvenanceRequestCreate,
        acting_account_id: Optional[str],
    ) -> OperationResult:
        """Ask the artwork's owner for a provenance update or for ownership."""
        try:
            request = self._create(artwork_id, data, acting_account_id)
        except LifecycleError as e:
            logger.warning(
                "Provenance request rejected",
                artwork_id=artwork_id,
                account_id=acting_account_id,
                request_type=data.request_type.value,
                reason=e.message,
            )
            return OperationResult.fail(e)

        return OperationResult.ok(request=request.to_dict())

    def _create(
        self,
        artwork_id: str,
        data: ProvenanceRequestCreate,
        acting_account_id: Optional[str],
    ) -> ProvenanceUpdateRequestModel:
        account = self._require_account(acting_account_id)

        artwork = self.artworks.get_artwork(artwork_id)
        if not artwork:
            raise not_found("Artwork not found")

        ownership = data.request_type == ProvenanceRequestType.OWNERSHIP_REQUEST
        if ownership:
            self._check_ownership_request(account, artwork)
        elif artwork.account_id == account.id:
            raise forbidden("You cannot request updates to your own artwork")

        request_type = data.request_type.value
        duplicate = conflict(
            f"You already have a pending {_label(request_type)} request for this artwork"
        )
        if self.requests.get_requests(
            artwork_id=artwork_id,
            requested_by=account.id,
            request_type=request_type,
            statuses=[ProvenanceRequestStatus.PENDING.value],
        ):
            raise duplicate

        try:
            request = self.requests.create_request(
                artwork_id=artwork_id,
                requested_by=account.id,
                request_type=request_type,
                update_fields=data.update_fields.changes(),
                request_message=data.message,
                commit=False,
            )
            self.audit.log_create(
                entity_kind=ENTITY_KIND,
                entity_id=request.id,
                after=request.to_dict(),
                actor_id=account.id,
                commit=False,
            )
            self.db.commit()
        except IntegrityError:
            # Partial unique index on pending (artwork, requester, type)
            self.db.rollback()
            raise duplicate

        self.db.refresh(request)
        logger.info(
            "Provenance request created",
            request_id=request.id,
            artwork_id=artwork_id,
            requested_by=account.id,
            request_type=request_type,
        )

        if ownership:
            notification_type = NotificationType.OWNERSHIP_REQUEST
            title = f"Ownership Request: {artwork.title}"
            text = (
                f'An artist has requested ownership of "{artwork.title}". '
                "Review the request in your portal."
            )
        else:
            notification_type = NotificationType.PROVENANCE_UPDATE_REQUEST
            title = f"Provenance Update Request: {artwork.title}"
            text = (
                "A user has requested to update the provenance information for "
                f'"{artwork.title}". Review the request in your portal.'
            )

        self._notify(
            user_id=artwork.account_id,
            type=notification_type,
            title=title,
            message=text,
            artwork_id=artwork.id,
            related_user_id=account.id,
            metadata={"requestId": request.id, "requestType": request_type},
        )
        return request

    def _check_ownership_request(self, account: AccountModel, artwork: ArtworkModel) -> None:
        if not account.resolved_role.is_(UserRole.ARTIST):
            raise forbidden("Only artists can request ownership")
        credited = (artwork.artist_name or "").strip().lower()
        if not credited or (account.name or "").strip().lower() != credited:
            raise forbidden(
                "Your name must match the artist name on the artwork to request ownership"
            )
        if artwork.account_id == account.id:
            raise conflict("You already own this artwork")

    # Review

    def review_request(
        self,
        request_id: str,
        acting_account_id: Optional[str],
        approved: bool,
        message: Optional[str] = None,
    ) -> OperationResult:
        """Owner approves or denies a pending request."""
        try:
            request, artwork = self._review(request_id, acting_account_id, approved, message)
        except LifecycleError as e:
            logger.warning(
                "Provenance request review failed",
                request_id=request_id,
                account_id=acting_account_id,
                approved=approved,
                reason=e.message,
            )
            return OperationResult.fail(e)

        return OperationResult.ok(request=request.to_dict(), artwork=artwork.to_dict())

    def _review(
        self,
        request_id: str,
        acting_account_id: Optional[str],
        approved: bool,
        message: Optional[str],
    ):
        account = self._require_account(acting_account_id)

        request = self.requests.get_request(request_id)
        if not request:
            raise not_found("Request not found")
        if request.status != ProvenanceRequestStatus.PENDING.value:
            raise invalid_state("This request has already been processed")

        artwork = self.artworks.get_artwork(request.artwork_id)
        if not artwork:
            raise not_found("Artwork not found")
        if artwork.account_id != account.id:
            raise forbidden(NO_PERMISSION)

        status = ProvenanceRequestStatus.APPROVED if approved else ProvenanceRequestStatus.DENIED
        if approved:
            self._apply(request, artwork, account)

        updated = self.requests.resolve_request(request.id, status, account.id, message)
        if updated != 1:
            self.db.rollback()
            raise invalid_state("This request has already been processed")

        self.audit.log_status_change(
            entity_kind=ENTITY_KIND,
            entity_id=request.id,
            old_status=ProvenanceRequestStatus.PENDING.value,
            new_status=status.value,
            actor_id=account.id,
            note=message,
            commit=False,
        )
        self.db.commit()
        self.db.refresh(request)
        self.db.refresh(artwork)

        logger.info(
            "Provenance request reviewed",
            request_id=request.id,
            artwork_id=artwork.id,
            request_type=request.request_type,
            status=status.value,
        )
        self._notify_requester(request, artwork, account, approved)
        return request, artwork

    def _apply(
        self,
        request: ProvenanceUpdateRequestModel,
        artwork: ArtworkModel,
        owner: AccountModel,
    ) -> None:
        """Write the approved change to the artwork. Nothing is committed."""
        if request.request_type == ProvenanceRequestType.OWNERSHIP_REQUEST.value:
            before = {"account_id": owner.id}
            changes = {"account_id": request.requested_by}
            note = f"Ownership transferred via request {request.id}"
        else:
            changes = {
                key: value
                for key, value in (request.update_fields or {}).items()
                if key in EDITABLE_FIELDS
            }
            before = {key: getattr(artwork, key) for key in changes}
            note = f"Provenance updated via request {request.id}"

        if changes:
            updated = self.artworks.update_artwork(
                artwork.id, changes, expected_owner_id=owner.id
            )
            if updated != 1:
                # Ownership moved after our read
                self.db.rollback()
                raise forbidden(NO_PERMISSION)

        self.audit.log_update(
            entity_kind="Artwork",
            entity_id=artwork.id,
            before=before,
            after=changes,
            actor_id=owner.id,
            note=note,
            commit=False,
        )

    def _notify_requester(
        self,
        request: ProvenanceUpdateRequestModel,
        artwork: ArtworkModel,
        owner: AccountModel,
        approved: bool,
    ) -> None:
        ownership = request.request_type == ProvenanceRequestType.OWNERSHIP_REQUEST.value
        if ownership and approved:
            notification_type = NotificationType.OWNERSHIP_APPROVED
            title = f"Ownership Approved: {artwork.title}"
            text = (
                f'Your ownership request for "{artwork.title}" has been approved. '
                "You are now the owner of this artwork."
            )
        elif ownership:
            notification_type = NotificationType.OWNERSHIP_DENIED
            title = f"Ownership Denied: {artwork.title}"
            text = f'Your ownership request for "{artwork.title}" has been denied.'
        elif approved:
            notification_type = NotificationType.PROVENANCE_UPDATE_APPROVED
            title = f"Update Approved: {artwork.title}"
            text = f'Your provenance update request for "{artwork.title}" has been approved.'
        else:
            notification_type = NotificationType.PROVENANCE_UPDATE_DENIED
            title = f"Update Denied: {artwork.title}"
            text = f'Your provenance update request for "{artwork.title}" has been denied.'

        self._notify(
            user_id=request.requested_by,
            type=notification_type,
            title=title,
            message=text,
            artwork_id=artwork.id,
            related_user_id=owner.id,
            metadata={
                "requestId": request.id,
                "requestType": request.request_type,
                "reviewMessage": request.review_message,
            },
        )
