"""
Tests for the certificate transition gate.

Pure functions, so no database fixtures are needed.
"""

import pytest

from provenance_registry.policy.certificate_gate import (
    NOT_CLAIMABLE,
    NOT_VERIFIABLE,
    can_transition,
    check_claim_role,
    check_claim_status,
    check_verify_owner,
    check_verify_role,
    check_verify_status,
    initial_certificate,
)
from provenance_registry.registry.enums import (
    CertificateStatus,
    CertificateType,
    UserRole,
)
from provenance_registry.registry.results import ErrorKind, LifecycleError

ALL_STATUSES = list(CertificateStatus)


class TestInitialCertificate:
    """Initial certificate state follows the poster's role."""

    def test_artist_self_authenticates(self):
        initial = initial_certificate(UserRole.ARTIST)
        assert initial.certificate_status == CertificateStatus.VERIFIED
        assert initial.certificate_type == CertificateType.AUTHENTICITY
        assert initial.self_authenticated is True

    @pytest.mark.parametrize(
        "role,certificate_type",
        [
            (UserRole.COLLECTOR, CertificateType.OWNERSHIP),
            (UserRole.GALLERY, CertificateType.SHOW),
        ],
    )
    def test_non_artist_waits_for_claim(self, role, certificate_type):
        initial = initial_certificate(role)
        assert initial.certificate_status == CertificateStatus.PENDING_ARTIST_CLAIM
        assert initial.certificate_type == certificate_type
        assert initial.self_authenticated is False

    def test_missing_role_requires_onboarding(self):
        with pytest.raises(LifecycleError) as exc_info:
            initial_certificate(None)
        assert exc_info.value.kind == ErrorKind.VALIDATION
        assert "complete onboarding" in exc_info.value.message


class TestCanTransition:
    """Only single forward steps are legal."""

    def test_forward_steps(self):
        assert can_transition("pending_artist_claim", "pending_verification")
        assert can_transition("pending_verification", "verified")

    def test_no_skipping(self):
        assert not can_transition("pending_artist_claim", "verified")

    @pytest.mark.parametrize("current", ALL_STATUSES)
    def test_never_backwards_or_in_place(self, current):
        for target in ALL_STATUSES:
            if target == current or ALL_STATUSES.index(target) < ALL_STATUSES.index(current):
                assert not can_transition(current, target)

    def test_unknown_status(self):
        assert not can_transition("draft", "verified")
        assert not can_transition("verified", "archived")


class TestClaimChecks:
    """Claim requires the artist role and a pending_artist_claim certificate."""

    def test_artist_on_pending_claim(self):
        check_claim_role(UserRole.ARTIST)
        assert (
            check_claim_status("pending_artist_claim")
            == CertificateStatus.PENDING_VERIFICATION
        )

    @pytest.mark.parametrize("role", [UserRole.COLLECTOR, UserRole.GALLERY, None])
    def test_non_artist_forbidden(self, role):
        with pytest.raises(LifecycleError) as exc_info:
            check_claim_role(role)
        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert exc_info.value.message == "Only artists can claim certificates"

    @pytest.mark.parametrize("status", ["pending_verification", "verified", "draft"])
    def test_wrong_state(self, status):
        with pytest.raises(LifecycleError) as exc_info:
            check_claim_status(status)
        assert exc_info.value.kind == ErrorKind.INVALID_STATE
        assert exc_info.value.message == NOT_CLAIMABLE

    @pytest.mark.parametrize("status", ALL_STATUSES)
    def test_status_check_agrees_with_can_transition(self, status):
        allowed = can_transition(status, CertificateStatus.PENDING_VERIFICATION)
        try:
            check_claim_status(status)
            passed = True
        except LifecycleError:
            passed = False
        assert passed is allowed


class TestVerifyChecks:
    """Verify requires collector/gallery, the poster, and pending_verification."""

    @pytest.mark.parametrize("role", [UserRole.COLLECTOR, UserRole.GALLERY])
    def test_owner_on_pending_verification(self, role):
        check_verify_role(role)
        check_verify_owner("acct-1", "acct-1")
        assert check_verify_status("pending_verification") == CertificateStatus.VERIFIED

    @pytest.mark.parametrize("role", [UserRole.ARTIST, None])
    def test_wrong_role(self, role):
        with pytest.raises(LifecycleError) as exc_info:
            check_verify_role(role)
        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert exc_info.value.message == "Only collectors and galleries can verify certificates"

    def test_not_the_poster(self):
        with pytest.raises(LifecycleError) as exc_info:
            check_verify_owner("acct-2", "acct-1")
        assert exc_info.value.kind == ErrorKind.FORBIDDEN
        assert exc_info.value.message == "You can only verify certificates for your own artworks"

    @pytest.mark.parametrize("status", ["pending_artist_claim", "verified"])
    def test_wrong_state(self, status):
        with pytest.raises(LifecycleError) as exc_info:
            check_verify_status(status)
        assert exc_info.value.kind == ErrorKind.INVALID_STATE
        assert exc_info.value.message == NOT_VERIFIABLE
