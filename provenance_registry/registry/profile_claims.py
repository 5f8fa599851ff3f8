"""
Artist profile claim workflow.

Galleries create profiles for artists they represent before those artists
have accounts. An artist later claims such a profile; the creating gallery
approves or rejects. A claim moves ``pending -> approved | rejected`` once and
never again.

Approval links the profile to the artist with a conditional update, so two
claims racing for the same profile cannot both link it: the loser is
auto-rejected.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import IntegrityError

from ..db.models import AccountModel, ArtistProfileClaimModel, ArtistProfileModel
from ..db.services import ArtistProfileService
from .enums import ActorKind, NotificationType, ProfileClaimStatus, UserRole
from .results import (
    LifecycleError,
    OperationResult,
    conflict,
    forbidden,
    invalid_state,
    not_found,
)
from .schemas import ArtistProfileCreate
from .workflow import RegistryWorkflow

logger = structlog.get_logger()

ALREADY_CLAIMED_RESPONSE = "Profile has already been claimed by another artist"
ALREADY_CLAIMED_ERROR = "This profile has already been claimed by another artist"
ARTIST_HAS_PROFILE_RESPONSE = "Artist already has an artist profile"
ARTIST_HAS_PROFILE_ERROR = "This artist already has an artist profile"


class ArtistProfileClaims(RegistryWorkflow):
    """Creates unclaimed profiles and runs the claim / approve / reject flow."""

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.profiles = ArtistProfileService(db)

    # Profiles

    def create_unclaimed_profile(
        self, data: ArtistProfileCreate, acting_account_id: Optional[str]
    ) -> OperationResult:
        """Gallery creates a profile for an artist who has no account yet."""
        try:
            account = self._require_account(acting_account_id)
            if not account.resolved_role.is_(UserRole.GALLERY):
                raise forbidden("Only galleries can create artist profiles")
        except LifecycleError as e:
            return OperationResult.fail(e)

        profile = self.profiles.create_profile(
            name=data.name,
            medium=data.medium,
            bio=data.bio,
            created_by_gallery_id=account.id,
        )
        self.audit.log_create(
            entity_kind="ArtistProfile",
            entity_id=profile.id,
            after=profile.to_dict(),
            actor_id=account.id,
        )
        logger.info("Artist profile created", profile_id=profile.id, gallery_id=account.id)
        return OperationResult.ok(profile=profile.to_dict())

    def list_unclaimed_profiles(self, artist_user_id: str) -> List[ArtistProfileModel]:
        """
        Profiles an artist could still claim.

        Empty for non-artists and for artists who already hold a profile.
        Profiles with a pending or approved claim by this artist are hidden.
        """
        account = self.accounts.get_account(artist_user_id)
        if not account or not account.resolved_role.is_(UserRole.ARTIST):
            return []
        if self.profiles.get_profile_for_user(artist_user_id):
            return []

        open_claims = self.profiles.get_claims(
            artist_user_id=artist_user_id,
            statuses=[ProfileClaimStatus.PENDING.value, ProfileClaimStatus.APPROVED.value],
        )
        excluded = {c.profile_id for c in open_claims}
        return [
            p
            for p in self.profiles.get_unclaimed_profiles()
            if p.id not in excluded and p.created_by_gallery_id
        ]

    def list_claims_for_gallery(
        self, gallery_id: str, status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Claims against a gallery's profiles, joined with profile and artist names."""
        account = self.accounts.get_account(gallery_id)
        if not account or not account.resolved_role.is_(UserRole.GALLERY):
            return []

        claims = self.profiles.get_claims(
            gallery_id=gallery_id,
            statuses=[status] if status else None,
        )
        results = []
        for claim in claims:
            profile = self.profiles.get_profile(claim.profile_id)
            artist = self.accounts.get_account(claim.artist_user_id)
            entry = claim.to_dict()
            entry["profile"] = {
                "id": claim.profile_id,
                "name": profile.name if profile else None,
                "medium": profile.medium if profile else None,
            }
            entry["artist"] = {
                "id": claim.artist_user_id,
                "name": artist.name if artist else "Unknown Artist",
                "picture_url": artist.picture_url if artist else None,
            }
            results.append(entry)
        return results

    # Request

    def request_claim(
        self,
        profile_id: str,
        acting_account_id: Optional[str],
        message: Optional[str] = None,
    ) -> OperationResult:
        """Artist asks to take over an unclaimed profile."""
        try:
            claim = self._request(profile_id, acting_account_id, message)
        except LifecycleError as e:
            logger.warning(
                "Profile claim request rejected",
                profile_id=profile_id,
                account_id=acting_account_id,
                reason=e.message,
            )
            return OperationResult.fail(e)

        return OperationResult.ok(claim=claim.to_dict())

    def _request(
        self, profile_id: str, acting_account_id: Optional[str], message: Optional[str]
    ) -> ArtistProfileClaimModel:
        account = self._require_account(acting_account_id)
        if not account.resolved_role.is_(UserRole.ARTIST):
            raise forbidden("Only artists can claim artist profiles")

        profile = self.profiles.get_profile(profile_id)
        if not profile:
            raise not_found("Profile not found")
        if profile.is_claimed or profile.user_id:
            raise invalid_state("This profile has already been claimed")
        if not profile.created_by_gallery_id:
            raise invalid_state("This profile cannot be claimed (no gallery creator)")

        if self.profiles.get_profile_for_user(account.id):
            raise conflict(
                "You already have an artist profile. "
                "You can only claim if you don't have one yet."
            )

        previous = self.profiles.get_claims(profile_id=profile_id, artist_user_id=account.id)
        statuses = {c.status for c in previous}
        if ProfileClaimStatus.PENDING.value in statuses:
            raise conflict("You already have a pending claim for this profile")
        if ProfileClaimStatus.APPROVED.value in statuses:
            raise conflict("Your claim has already been approved")

        try:
            claim = self.profiles.create_claim(
                profile_id=profile_id,
                artist_user_id=account.id,
                gallery_id=profile.created_by_gallery_id,
                message=message,
            )
        except IntegrityError:
            # Partial unique index on pending (profile, artist)
            self.db.rollback()
            raise conflict("You already have a pending claim for this profile")

        logger.info(
            "Profile claim requested",
            claim_id=claim.id,
            profile_id=profile_id,
            artist_user_id=account.id,
        )

        self._notify(
            user_id=profile.created_by_gallery_id,
            type=NotificationType.ARTIST_PROFILE_CLAIM_REQUEST,
            title=f"Artist Profile Claim Request: {profile.name}",
            message=(
                f'{account.name or "An artist"} is requesting to claim the artist profile '
                f'"{profile.name}". Please review and approve or reject the claim.'
            ),
            related_user_id=account.id,
            metadata={
                "profileId": profile_id,
                "claimId": claim.id,
                "artistName": account.name,
                "message": message,
            },
        )
        return claim

    # Resolve

    def resolve_claim(
        self,
        claim_id: str,
        acting_account_id: Optional[str],
        approved: bool,
        response: Optional[str] = None,
    ) -> OperationResult:
        """Gallery approves or rejects a pending claim."""
        try:
            claim = self._resolve(claim_id, acting_account_id, approved, response)
        except LifecycleError as e:
            logger.warning(
                "Profile claim resolution failed",
                claim_id=claim_id,
                account_id=acting_account_id,
                approved=approved,
                reason=e.message,
            )
            return OperationResult.fail(e)

        return OperationResult.ok(claim=claim.to_dict())

    def _resolve(
        self,
        claim_id: str,
        acting_account_id: Optional[str],
        approved: bool,
        response: Optional[str],
    ) -> ArtistProfileClaimModel:
        account = self._require_account(acting_account_id)

        claim = self.profiles.get_claim(claim_id)
        if not claim:
            raise not_found("Claim not found")
        if claim.status != ProfileClaimStatus.PENDING.value:
            raise invalid_state("This claim has already been processed")
        if claim.gallery_id != account.id:
            raise forbidden("You are not authorized to approve this claim")
        if not account.resolved_role.is_(UserRole.GALLERY):
            raise forbidden("Only galleries can approve artist profile claims")

        profile = self.profiles.get_profile(claim.profile_id)
        if not profile:
            raise not_found("Profile not found")

        if not approved:
            self._finish(claim, account, profile, ProfileClaimStatus.REJECTED, response)
            return claim

        if profile.is_claimed or profile.user_id:
            self._auto_reject(claim, account, profile, ALREADY_CLAIMED_RESPONSE)
            raise conflict(ALREADY_CLAIMED_ERROR)

        existing = self.profiles.get_profile_for_user(claim.artist_user_id)
        if existing and existing.id != profile.id:
            self._auto_reject(claim, account, profile, ARTIST_HAS_PROFILE_RESPONSE)
            raise conflict(ARTIST_HAS_PROFILE_ERROR)

        linked = self.profiles.link_profile(profile.id, claim.artist_user_id)
        if linked != 1:
            # Another approval linked the profile after our read
            self.db.rollback()
            self._auto_reject(claim, account, profile, ALREADY_CLAIMED_RESPONSE)
            raise conflict(ALREADY_CLAIMED_ERROR)

        self.audit.log_link(
            entity_kind="ArtistProfile",
            entity_id=profile.id,
            linked_kind="Account",
            linked_id=claim.artist_user_id,
            actor_id=account.id,
            note=f"Linked via claim {claim.id}",
            commit=False,
        )
        self._finish(claim, account, profile, ProfileClaimStatus.APPROVED, response)
        return claim

    def _auto_reject(
        self,
        claim: ArtistProfileClaimModel,
        gallery: AccountModel,
        profile: ArtistProfileModel,
        reason: str,
    ) -> None:
        logger.info("Auto-rejecting profile claim", claim_id=claim.id, reason=reason)
        self._finish(
            claim,
            gallery,
            profile,
            ProfileClaimStatus.REJECTED,
            reason,
            actor_kind=ActorKind.SYSTEM,
        )

    def _finish(
        self,
        claim: ArtistProfileClaimModel,
        gallery: AccountModel,
        profile: ArtistProfileModel,
        status: ProfileClaimStatus,
        response: Optional[str],
        actor_kind: ActorKind = ActorKind.HUMAN,
    ) -> None:
        """Resolve the claim, commit with its audit entry, then notify the artist."""
        updated = self.profiles.resolve_claim(claim.id, status, response)
        if updated != 1:
            self.db.rollback()
            raise invalid_state("This claim has already been processed")

        self.audit.log_status_change(
            entity_kind="ArtistProfileClaim",
            entity_id=claim.id,
            old_status=ProfileClaimStatus.PENDING.value,
            new_status=status.value,
            actor_kind=actor_kind.value,
            actor_id=gallery.id,
            note=response,
            commit=False,
        )
        self.db.commit()
        self.db.refresh(claim)
        self.db.refresh(profile)

        logger.info(
            "Profile claim resolved",
            claim_id=claim.id,
            profile_id=profile.id,
            status=status.value,
        )

        approved = status == ProfileClaimStatus.APPROVED
        gallery_name = gallery.name or "A gallery"
        if approved:
            title = f"Profile Claim Approved: {profile.name}"
            text = (
                f'{gallery_name} has approved your claim for the artist profile '
                f'"{profile.name}". The profile is now linked to your account.'
            )
        else:
            title = f"Profile Claim Rejected: {profile.name}"
            text = (
                f'{gallery_name} has rejected your claim for the artist profile '
                f'"{profile.name}".'
            )

        self._notify(
            user_id=claim.artist_user_id,
            type=(
                NotificationType.ARTIST_PROFILE_CLAIM_APPROVED
                if approved
                else NotificationType.ARTIST_PROFILE_CLAIM_REJECTED
            ),
            title=title,
            message=text,
            related_user_id=gallery.id,
            metadata={
                "profileId": profile.id,
                "claimId": claim.id,
                "galleryResponse": response,
            },
        )
