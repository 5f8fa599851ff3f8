"""
Transition gate for artwork certificates.

Pure rules: no DB access, no request objects. Callers load rows, ask the gate,
and apply the change themselves. Every rejection raises ``LifecycleError``
with a stable kind and a message the presentation layer can show as-is.

Rules:
- Initial state follows the poster's role: artists self-authenticate
  (verified / authenticity); collectors and galleries start at
  pending_artist_claim with an ownership or show certificate.
- Claim: actor role must be artist; status must be pending_artist_claim.
- Verify: actor role must be collector or gallery; actor must be the poster;
  status must be pending_verification.
- Status only moves forward, one step at a time; the status checks go
  through ``can_transition`` and return the target state.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from ..registry.enums import CertificateStatus, CertificateType, UserRole
from ..registry.results import forbidden, invalid_state, validation

# Forward order of certificate states
STATUS_RANK = {
    CertificateStatus.PENDING_ARTIST_CLAIM: 0,
    CertificateStatus.PENDING_VERIFICATION: 1,
    CertificateStatus.VERIFIED: 2,
}

CERTIFICATE_TYPE_BY_ROLE = {
    UserRole.ARTIST: CertificateType.AUTHENTICITY,
    UserRole.GALLERY: CertificateType.SHOW,
    UserRole.COLLECTOR: CertificateType.OWNERSHIP,
}

VERIFYING_ROLES = (UserRole.COLLECTOR, UserRole.GALLERY)

NOT_CLAIMABLE = "Certificate is not available for claiming"
NOT_VERIFIABLE = "Certificate is not ready for verification"


class InitialCertificate(NamedTuple):
    certificate_type: CertificateType
    certificate_status: CertificateStatus
    self_authenticated: bool


def _coerce_status(status) -> Optional[CertificateStatus]:
    try:
        return CertificateStatus(status)
    except ValueError:
        return None


def initial_certificate(role: Optional[UserRole]) -> InitialCertificate:
    """Decide certificate type and status for a new artwork."""
    if role is None:
        raise validation("Please complete onboarding before posting artworks")

    if role == UserRole.ARTIST:
        return InitialCertificate(
            CertificateType.AUTHENTICITY, CertificateStatus.VERIFIED, True
        )

    return InitialCertificate(
        CERTIFICATE_TYPE_BY_ROLE[role],
        CertificateStatus.PENDING_ARTIST_CLAIM,
        False,
    )


def can_transition(current, target) -> bool:
    """True only for a single forward step between known states."""
    current_status = _coerce_status(current)
    target_status = _coerce_status(target)
    if current_status is None or target_status is None:
        return False
    return STATUS_RANK[target_status] == STATUS_RANK[current_status] + 1


def check_claim_role(role: Optional[UserRole]) -> None:
    if role != UserRole.ARTIST:
        raise forbidden("Only artists can claim certificates")


def check_claim_status(status) -> CertificateStatus:
    """Return the status a claim moves the certificate to."""
    target = CertificateStatus.PENDING_VERIFICATION
    if not can_transition(status, target):
        raise invalid_state(NOT_CLAIMABLE)
    return target


def check_verify_role(role: Optional[UserRole]) -> None:
    if role not in VERIFYING_ROLES:
        raise forbidden("Only collectors and galleries can verify certificates")


def check_verify_owner(actor_id: str, owner_id: str) -> None:
    if actor_id != owner_id:
        raise forbidden("You can only verify certificates for your own artworks")


def check_verify_status(status) -> CertificateStatus:
    """Return the status a verification moves the certificate to."""
    target = CertificateStatus.VERIFIED
    if not can_transition(status, target):
        raise invalid_state(NOT_VERIFIABLE)
    return target
