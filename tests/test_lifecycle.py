"""
Tests for the certificate lifecycle engine.

Covers creation, claim and verify against a real (in-memory) database,
including the end-to-end gallery and collector scenarios.
"""

import pytest

from provenance_registry.config import Settings
from provenance_registry.db.audit_service import AuditService
from provenance_registry.db.models import ArtworkModel, NotificationModel
from provenance_registry.db.services import NotificationService
from provenance_registry.policy.certificate_gate import (
    NOT_CLAIMABLE,
    NOT_VERIFIABLE,
    can_transition,
)
from provenance_registry.registry.certificates import CertificateNumberGenerator
from provenance_registry.registry.enums import UserRole
from provenance_registry.registry.lifecycle import CertificateLifecycle
from provenance_registry.registry.results import CertificateNumberError
from provenance_registry.registry.schemas import ArtworkCreate


class FailingNotifications(NotificationService):
    """Notification store that is always down."""

    def create_notification(self, **kwargs):
        raise RuntimeError("notification store unavailable")


def _notifications(db_session, user_id):
    return NotificationService(db_session).get_notifications(user_id)


def _reload(db_session, artwork_id) -> ArtworkModel:
    db_session.expire_all()
    return db_session.query(ArtworkModel).filter(ArtworkModel.id == artwork_id).one()


class TestCreateArtwork:
    """Tests for CertificateLifecycle.create_artwork()."""

    def test_requires_sign_in(self, lifecycle):
        result = lifecycle.create_artwork(ArtworkCreate(title="Sunset"), None)
        assert not result.success
        assert result.kind == "unauthorized"
        assert result.error == "You must be signed in"

    def test_unknown_account(self, lifecycle):
        result = lifecycle.create_artwork(ArtworkCreate(title="Sunset"), "ghost")
        assert not result.success
        assert result.kind == "unauthorized"
        assert result.error == "Account not found"

    def test_onboarding_required(self, lifecycle, make_account, db_session):
        newcomer = make_account(role=None)
        result = lifecycle.create_artwork(ArtworkCreate(title="Sunset"), newcomer.id)

        assert not result.success
        assert result.kind == "validation"
        assert result.error == "Please complete onboarding before posting artworks"
        assert db_session.query(ArtworkModel).count() == 0

    def test_artist_self_post_is_verified_immediately(self, post_artwork, artist, db_session):
        artwork = post_artwork(artist, title="Self Portrait")

        assert artwork["certificate_status"] == "verified"
        assert artwork["certificate_type"] == "authenticity"
        assert artwork["artist_account_id"] == artist.id
        assert artwork["artist_name"] == "Jane Doe"
        assert artwork["claimed_by_artist_at"] is None
        assert artwork["verified_by_owner_at"] is None
        assert db_session.query(NotificationModel).count() == 0

    def test_artist_keeps_explicit_artist_name(self, post_artwork, artist):
        artwork = post_artwork(artist, artist_name="J. Doe")
        assert artwork["artist_name"] == "J. Doe"

    def test_collector_post_waits_for_claim(self, post_artwork, collector):
        artwork = post_artwork(collector, artist_name="Nobody Known")

        assert artwork["certificate_status"] == "pending_artist_claim"
        assert artwork["certificate_type"] == "ownership"
        assert artwork["artist_account_id"] is None
        assert artwork["account_id"] == collector.id

    def test_gallery_post_hints_matching_artist(self, post_artwork, gallery, artist, db_session):
        artwork = post_artwork(gallery, title="Sunset", artist_name="jane doe")

        assert artwork["certificate_type"] == "show"
        assert artwork["certificate_status"] == "pending_artist_claim"
        assert artwork["artist_account_id"] == artist.id

        notifications = _notifications(db_session, artist.id)
        assert len(notifications) == 1
        assert notifications[0].type == "certificate_claim_request"
        assert notifications[0].artwork_id == artwork["id"]
        assert notifications[0].related_user_id == gallery.id

    def test_hint_ignores_non_artist_accounts(self, post_artwork, gallery, make_account):
        make_account(UserRole.COLLECTOR, name="Pat Painter")
        artwork = post_artwork(gallery, artist_name="Pat Painter")
        assert artwork["artist_account_id"] is None

    def test_creation_is_audited(self, post_artwork, collector, db_session):
        artwork = post_artwork(collector, title="Harbor")

        entries = AuditService(db_session).query_by_entity("Artwork", artwork["id"])
        assert len(entries) == 1
        assert entries[0].action == "created"
        assert entries[0].actor_id == collector.id
        assert entries[0].after["certificate_number"] == artwork["certificate_number"]

    def test_number_exhaustion_escapes(self, db_session, collector, post_artwork):
        existing = post_artwork(collector)
        token = existing["certificate_number"].removeprefix("PROV-")
        generator = CertificateNumberGenerator(
            db_session,
            settings=Settings(certificate_number_max_attempts=2),
            token_factory=lambda length: token,
        )
        lifecycle = CertificateLifecycle(db_session, number_generator=generator)

        with pytest.raises(CertificateNumberError):
            lifecycle.create_artwork(ArtworkCreate(title="Second"), collector.id)

        assert db_session.query(ArtworkModel).count() == 1


class TestClaimCertificate:
    """Tests for CertificateLifecycle.claim_certificate()."""

    def test_claim_moves_to_pending_verification(
        self, lifecycle, post_artwork, collector, artist, db_session
    ):
        artwork = post_artwork(collector, title="Harbor")

        result = lifecycle.claim_certificate(artwork["id"], artist.id)

        assert result.success
        claimed = result.data["artwork"]
        assert claimed["certificate_status"] == "pending_verification"
        assert claimed["artist_account_id"] == artist.id
        assert claimed["claimed_by_artist_at"] is not None

        notifications = _notifications(db_session, collector.id)
        assert len(notifications) == 1
        assert notifications[0].type == "certificate_claimed"
        assert notifications[0].metadata_ == {
            "certificateNumber": artwork["certificate_number"],
            "artistName": "Jane Doe",
        }

    @pytest.mark.parametrize("role", [UserRole.COLLECTOR, UserRole.GALLERY, None])
    def test_only_artists_can_claim(self, lifecycle, post_artwork, collector, make_account, role):
        pending = post_artwork(collector)
        self_posted = post_artwork(make_account(UserRole.ARTIST))
        actor = make_account(role)

        for artwork in (pending, self_posted):
            result = lifecycle.claim_certificate(artwork["id"], actor.id)
            assert not result.success
            assert result.kind == "forbidden"
            assert result.error == "Only artists can claim certificates"

    def test_second_claim_fails(self, lifecycle, post_artwork, collector, artist, db_session):
        artwork = post_artwork(collector)

        assert lifecycle.claim_certificate(artwork["id"], artist.id).success
        second = lifecycle.claim_certificate(artwork["id"], artist.id)

        assert not second.success
        assert second.kind == "invalid_state"
        assert second.error == NOT_CLAIMABLE

        actions = [
            e.action for e in AuditService(db_session).query_by_entity("Artwork", artwork["id"])
        ]
        assert actions.count("status_changed") == 1
        assert len(_notifications(db_session, collector.id)) == 1

    def test_self_posted_artwork_not_claimable(self, lifecycle, post_artwork, make_account):
        artwork = post_artwork(make_account(UserRole.ARTIST))
        other_artist = make_account(UserRole.ARTIST)

        result = lifecycle.claim_certificate(artwork["id"], other_artist.id)

        assert result.kind == "invalid_state"
        assert result.error == NOT_CLAIMABLE

    def test_unknown_artwork(self, lifecycle, artist):
        result = lifecycle.claim_certificate("missing", artist.id)
        assert result.kind == "not_found"
        assert result.error == "Artwork not found"

    def test_not_signed_in(self, lifecycle, post_artwork, collector):
        artwork = post_artwork(collector)
        result = lifecycle.claim_certificate(artwork["id"], None)
        assert result.kind == "unauthorized"

    def test_concurrent_claim_loses(
        self, lifecycle, post_artwork, collector, artist, make_account, db_session
    ):
        artwork = post_artwork(collector)
        rival = make_account(UserRole.ARTIST)
        transition = lifecycle.artworks.transition_certificate

        def racing_transition(artwork_id, **kwargs):
            # Rival's claim commits between our read and our update
            transition(
                artwork_id,
                expected_status="pending_artist_claim",
                values={
                    "certificate_status": "pending_verification",
                    "artist_account_id": rival.id,
                },
            )
            db_session.commit()
            return transition(artwork_id, **kwargs)

        lifecycle.artworks.transition_certificate = racing_transition

        result = lifecycle.claim_certificate(artwork["id"], artist.id)

        assert not result.success
        assert result.kind == "invalid_state"
        assert result.error == NOT_CLAIMABLE
        assert _reload(db_session, artwork["id"]).artist_account_id == rival.id

    def test_notification_failure_does_not_fail_claim(
        self, post_artwork, collector, artist, db_session
    ):
        artwork = post_artwork(collector)
        lifecycle = CertificateLifecycle(
            db_session, notifications=FailingNotifications(db_session)
        )

        result = lifecycle.claim_certificate(artwork["id"], artist.id)

        assert result.success
        stored = _reload(db_session, artwork["id"])
        assert stored.certificate_status == "pending_verification"
        assert stored.artist_account_id == artist.id
        assert _notifications(db_session, collector.id) == []


class TestVerifyCertificate:
    """Tests for CertificateLifecycle.verify_certificate()."""

    @pytest.fixture
    def claimed(self, lifecycle, post_artwork, collector, artist):
        artwork = post_artwork(collector, title="Harbor")
        assert lifecycle.claim_certificate(artwork["id"], artist.id).success
        return artwork

    def test_owner_verifies(self, lifecycle, claimed, collector, artist, db_session):
        result = lifecycle.verify_certificate(claimed["id"], collector.id)

        assert result.success
        verified = result.data["artwork"]
        assert verified["certificate_status"] == "verified"
        assert verified["certificate_type"] == "authenticity"
        assert verified["verified_by_owner_at"] is not None

        notifications = _notifications(db_session, artist.id)
        assert [n.type for n in notifications] == ["certificate_verified"]

    def test_other_collector_cannot_verify(self, lifecycle, claimed, make_account):
        stranger = make_account(UserRole.COLLECTOR)
        result = lifecycle.verify_certificate(claimed["id"], stranger.id)
        assert result.kind == "forbidden"
        assert result.error == "You can only verify certificates for your own artworks"

    def test_artist_cannot_verify(self, lifecycle, claimed, artist):
        result = lifecycle.verify_certificate(claimed["id"], artist.id)
        assert result.kind == "forbidden"
        assert result.error == "Only collectors and galleries can verify certificates"

    def test_cannot_verify_before_claim(self, lifecycle, post_artwork, collector):
        artwork = post_artwork(collector)
        result = lifecycle.verify_certificate(artwork["id"], collector.id)
        assert result.kind == "invalid_state"
        assert result.error == NOT_VERIFIABLE

    def test_cannot_verify_twice(self, lifecycle, claimed, collector):
        assert lifecycle.verify_certificate(claimed["id"], collector.id).success
        again = lifecycle.verify_certificate(claimed["id"], collector.id)
        assert again.kind == "invalid_state"
        assert again.error == NOT_VERIFIABLE

    def test_unknown_artwork(self, lifecycle, collector):
        result = lifecycle.verify_certificate("missing", collector.id)
        assert result.kind == "not_found"

    def test_verify_without_artist_sends_nothing(
        self, lifecycle, post_artwork, collector, artist, db_session
    ):
        artwork = post_artwork(collector)
        assert lifecycle.claim_certificate(artwork["id"], artist.id).success
        # Simulate a claim whose artist account was later detached
        db_session.query(ArtworkModel).filter(ArtworkModel.id == artwork["id"]).update(
            {"artist_account_id": None}
        )
        db_session.commit()

        assert lifecycle.verify_certificate(artwork["id"], collector.id).success
        assert _notifications(db_session, artist.id) == []


class TestScenarios:
    """End-to-end flows."""

    def test_gallery_posts_for_known_artist(
        self, lifecycle, post_artwork, gallery, artist, db_session
    ):
        artwork = post_artwork(gallery, title="Sunset", artist_name="Jane Doe")
        assert artwork["certificate_status"] == "pending_artist_claim"
        assert artwork["certificate_type"] == "show"
        assert artwork["artist_account_id"] == artist.id

        claim = lifecycle.claim_certificate(artwork["id"], artist.id)
        assert claim.success
        assert claim.data["artwork"]["certificate_status"] == "pending_verification"
        assert claim.data["artwork"]["artist_account_id"] == artist.id
        assert [n.type for n in _notifications(db_session, gallery.id)] == [
            "certificate_claimed"
        ]

        verify = lifecycle.verify_certificate(artwork["id"], gallery.id)
        assert verify.success
        assert verify.data["artwork"]["certificate_status"] == "verified"
        assert verify.data["artwork"]["certificate_type"] == "authenticity"
        assert {n.type for n in _notifications(db_session, artist.id)} == {
            "certificate_claim_request",
            "certificate_verified",
        }

    def test_collector_post_claimed_by_any_artist(
        self, lifecycle, post_artwork, collector, make_account
    ):
        artwork = post_artwork(collector, artist_name="Someone Unregistered")
        assert artwork["artist_account_id"] is None

        other_artist = make_account(UserRole.ARTIST, name="Different Name")
        result = lifecycle.claim_certificate(artwork["id"], other_artist.id)

        assert result.success
        assert result.data["artwork"]["artist_account_id"] == other_artist.id

    def test_status_history_only_moves_forward(
        self, lifecycle, post_artwork, collector, artist, db_session
    ):
        artwork = post_artwork(collector)
        lifecycle.claim_certificate(artwork["id"], artist.id)
        lifecycle.claim_certificate(artwork["id"], artist.id)
        lifecycle.verify_certificate(artwork["id"], collector.id)
        lifecycle.verify_certificate(artwork["id"], collector.id)

        entries = AuditService(db_session).query_by_entity("Artwork", artwork["id"])
        changes = [e for e in entries if e.action == "status_changed"]

        assert len(changes) == 2
        for entry in changes:
            assert can_transition(entry.before["status"], entry.after["status"])
        assert _reload(db_session, artwork["id"]).certificate_status == "verified"
