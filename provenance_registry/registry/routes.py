"""
Registry API Routes.

Thin handlers: resolve the acting account from the session header, call the
workflow service, and translate failed results into HTTP errors.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db.audit_service import AuditService
from ..db.base import get_db
from ..db.services import AccountService, ArtworkService, NotificationService
from .accounts import AccountOnboarding
from .certificates import CertificateNumberGenerator
from .enums import CertificateStatus, ProfileClaimStatus, ProvenanceRequestStatus
from .lifecycle import CertificateLifecycle
from .profile_claims import ArtistProfileClaims
from .provenance_requests import ProvenanceRequests
from .results import CertificateNumberError, ErrorKind, OperationResult
from .schemas import (
    AccountCreate,
    ArtistProfileCreate,
    ArtworkCreate,
    ProfileClaimCreate,
    ProfileClaimResolve,
    ProvenanceRequestCreate,
    ProvenanceRequestReview,
    RoleUpdate,
)

logger = structlog.get_logger()

router = APIRouter(tags=["registry"])

STATUS_BY_KIND = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 422,
}


def get_acting_account_id(request: Request) -> Optional[str]:
    """Account id placed on the request by the auth gateway, if any."""
    value = request.headers.get(get_settings().session_header)
    if value is None or not value.strip():
        return None
    return value.strip()


def _require_signed_in(acting_account_id: Optional[str]) -> str:
    if not acting_account_id:
        raise HTTPException(
            status_code=401,
            detail={"success": False, "error": "You must be signed in", "kind": "unauthorized"},
        )
    return acting_account_id


def _respond(result: OperationResult) -> Dict[str, Any]:
    """Return a successful result as JSON or raise the matching HTTP error."""
    if result.success:
        return result.model_dump(mode="json")

    status_code = STATUS_BY_KIND.get(ErrorKind(result.kind), 400)
    raise HTTPException(
        status_code=status_code,
        detail=result.model_dump(mode="json", exclude={"data"}),
    )


# =============================================================================
# Account Endpoints
# =============================================================================


@router.post("/accounts", status_code=201)
async def create_account(
    account: AccountCreate,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Register an account. Accounts without a role must complete onboarding."""
    return _respond(AccountOnboarding(db).register(account))


@router.get("/accounts/{account_id}")
async def get_account(
    account_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get an account by ID."""
    account = AccountService(db).get_account(account_id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")
    return account.to_dict()


@router.put("/accounts/{account_id}/role")
async def update_account_role(
    account_id: str,
    update: RoleUpdate,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Choose a role during onboarding, or change it later."""
    return _respond(
        AccountOnboarding(db).update_role(account_id, update.role, acting_account_id)
    )


# =============================================================================
# Artwork / Certificate Endpoints
# =============================================================================


@router.post("/artworks", status_code=201)
async def create_artwork(
    artwork: ArtworkCreate,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Post an artwork. The certificate state follows the poster's role."""
    lifecycle = CertificateLifecycle(db, number_generator=CertificateNumberGenerator(db))
    try:
        result = lifecycle.create_artwork(artwork, acting_account_id)
    except CertificateNumberError as e:
        logger.error("Artwork creation failed", error=e.message)
        raise HTTPException(
            status_code=503,
            detail={"success": False, "error": e.message, "kind": "fatal"},
        )
    return _respond(result)


@router.get("/artworks")
async def list_artworks(
    account_id: Optional[str] = None,
    artist_account_id: Optional[str] = None,
    certificate_status: Optional[CertificateStatus] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """List artworks with optional filtering."""
    artworks = ArtworkService(db).get_artworks(
        account_id=account_id,
        artist_account_id=artist_account_id,
        certificate_status=certificate_status.value if certificate_status else None,
        limit=limit,
        offset=offset,
    )
    return [a.to_dict() for a in artworks]


@router.get("/artworks/{artwork_id}")
async def get_artwork(
    artwork_id: str,
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Get an artwork by ID."""
    artwork = ArtworkService(db).get_artwork(artwork_id)
    if not artwork:
        raise HTTPException(status_code=404, detail="Artwork not found")
    return artwork.to_dict()


@router.post("/artworks/{artwork_id}/claim")
async def claim_certificate(
    artwork_id: str,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Artist claims the certificate of an artwork posted by someone else."""
    return _respond(CertificateLifecycle(db).claim_certificate(artwork_id, acting_account_id))


@router.post("/artworks/{artwork_id}/verify")
async def verify_certificate(
    artwork_id: str,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Poster verifies the artist's claim."""
    return _respond(CertificateLifecycle(db).verify_certificate(artwork_id, acting_account_id))


@router.get("/artworks/{artwork_id}/audit")
async def get_artwork_audit(
    artwork_id: str,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """Certificate history for an artwork, newest first."""
    entries = AuditService(db).query_by_entity("Artwork", artwork_id, limit=limit, offset=offset)
    return [e.to_dict() for e in entries]


# =============================================================================
# Notification Endpoints
# =============================================================================


@router.get("/notifications")
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> List[Dict[str, Any]]:
    """List the signed-in account's notifications."""
    user_id = _require_signed_in(acting_account_id)
    notifications = NotificationService(db).get_notifications(
        user_id, unread_only=unread_only, limit=limit, offset=offset
    )
    return [n.to_dict() for n in notifications]


@router.get("/notifications/unread-count")
async def unread_notification_count(
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, int]:
    user_id = _require_signed_in(acting_account_id)
    return {"count": NotificationService(db).get_unread_count(user_id)}


@router.post("/notifications/read-all")
async def mark_all_notifications_read(
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    user_id = _require_signed_in(acting_account_id)
    updated = NotificationService(db).mark_all_as_read(user_id)
    return {"status": "success", "updated": updated}


@router.post("/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, str]:
    """Mark one notification read. Repeating the call is harmless."""
    user_id = _require_signed_in(acting_account_id)
    if not NotificationService(db).mark_as_read(notification_id, user_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"status": "success"}


# =============================================================================
# Artist Profile Claim Endpoints
# =============================================================================


@router.post("/artist-profiles", status_code=201)
async def create_artist_profile(
    profile: ArtistProfileCreate,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Gallery creates an unclaimed profile for an artist it represents."""
    return _respond(
        ArtistProfileClaims(db).create_unclaimed_profile(profile, acting_account_id)
    )


@router.get("/artist-profiles/unclaimed")
async def list_unclaimed_profiles(
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> List[Dict[str, Any]]:
    """Profiles the signed-in artist could claim."""
    user_id = _require_signed_in(acting_account_id)
    profiles = ArtistProfileClaims(db).list_unclaimed_profiles(user_id)
    return [p.to_dict() for p in profiles]


@router.post("/artist-profiles/{profile_id}/claims", status_code=201)
async def request_profile_claim(
    profile_id: str,
    claim: ProfileClaimCreate,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Artist requests to take over an unclaimed profile."""
    return _respond(
        ArtistProfileClaims(db).request_claim(profile_id, acting_account_id, claim.message)
    )


@router.get("/artist-profile-claims")
async def list_profile_claims(
    status: Optional[ProfileClaimStatus] = None,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> List[Dict[str, Any]]:
    """Claims against the signed-in gallery's profiles."""
    gallery_id = _require_signed_in(acting_account_id)
    return ArtistProfileClaims(db).list_claims_for_gallery(
        gallery_id, status=status.value if status else None
    )


@router.post("/artist-profile-claims/{claim_id}/resolve")
async def resolve_profile_claim(
    claim_id: str,
    decision: ProfileClaimResolve,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Gallery approves or rejects a pending claim."""
    return _respond(
        ArtistProfileClaims(db).resolve_claim(
            claim_id, acting_account_id, decision.approved, decision.response
        )
    )


# =============================================================================
# Provenance Update / Ownership Request Endpoints
# =============================================================================


@router.post("/artworks/{artwork_id}/provenance-requests", status_code=201)
async def create_provenance_request(
    artwork_id: str,
    provenance_request: ProvenanceRequestCreate,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Ask the artwork's owner for a provenance update or for ownership."""
    return _respond(
        ProvenanceRequests(db).create_request(
            artwork_id, provenance_request, acting_account_id
        )
    )


@router.get("/provenance-requests")
async def list_provenance_requests(
    mine: bool = Query(False, description="Requests I filed instead of requests to me"),
    status: Optional[ProvenanceRequestStatus] = None,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> List[Dict[str, Any]]:
    """Requests on the signed-in account's artworks, or the ones it filed."""
    account_id = _require_signed_in(acting_account_id)
    workflow = ProvenanceRequests(db)
    status_value = status.value if status else None
    if mine:
        return workflow.list_requests_by_requester(account_id, status=status_value)
    return workflow.list_requests_for_owner(account_id, status=status_value)


@router.post("/provenance-requests/{request_id}/review")
async def review_provenance_request(
    request_id: str,
    review: ProvenanceRequestReview,
    db: Session = Depends(get_db),
    acting_account_id: Optional[str] = Depends(get_acting_account_id),
) -> Dict[str, Any]:
    """Owner approves or denies a pending request."""
    return _respond(
        ProvenanceRequests(db).review_request(
            request_id, acting_account_id, review.approved, review.message
        )
    )
