"""
Request schemas for registry operations.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator, model_validator

from .enums import ProvenanceRequestType, UserRole


def _strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class AccountCreate(BaseModel):
    """Schema for registering an account (normally done by the auth provider)."""

    model_config = ConfigDict(extra="forbid")

    id: Optional[constr(min_length=1, max_length=36)] = Field(
        None, description="Identity from the auth provider; generated when omitted"
    )
    name: constr(min_length=1, max_length=255)
    email: Optional[constr(min_length=3, max_length=320)] = None
    role: Optional[UserRole] = Field(
        None, description="Leave empty to require onboarding"
    )
    public_data: Dict[str, Any] = Field(
        default_factory=dict,
        description="Profile attributes; role and admin keys are ignored",
    )


class RoleUpdate(BaseModel):
    """Schema for the onboarding role selection."""

    model_config = ConfigDict(extra="forbid")

    role: UserRole


class ArtworkCreate(BaseModel):
    """Schema for posting an artwork."""

    model_config = ConfigDict(extra="forbid")

    title: constr(min_length=1, max_length=500)
    description: Optional[str] = None
    artist_name: Optional[constr(max_length=255)] = Field(
        None, description="Credited artist; matched against artist accounts by name"
    )
    medium: Optional[constr(max_length=255)] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value

    @field_validator("description", "artist_name", "medium")
    @classmethod
    def strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)


class ArtistProfileCreate(BaseModel):
    """Schema for a gallery creating a profile for an artist it represents."""

    model_config = ConfigDict(extra="forbid")

    name: constr(min_length=1, max_length=255)
    medium: Optional[constr(max_length=255)] = None
    bio: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("medium", "bio")
    @classmethod
    def strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)


class ProfileClaimCreate(BaseModel):
    """Schema for an artist's claim on an unclaimed profile."""

    model_config = ConfigDict(extra="forbid")

    message: Optional[constr(max_length=2000)] = None

    @field_validator("message")
    @classmethod
    def strip_message(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)


class ProfileClaimResolve(BaseModel):
    """Schema for a gallery approving or rejecting a claim."""

    model_config = ConfigDict(extra="forbid")

    approved: bool
    response: Optional[constr(max_length=2000)] = Field(
        None, description="Optional note shown to the artist"
    )

    @field_validator("response")
    @classmethod
    def strip_response(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)


class ProvenanceUpdateFields(BaseModel):
    """Artwork fields a provenance update may change. Only fields sent are applied."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[constr(min_length=1, max_length=500)] = None
    description: Optional[str] = None
    artist_name: Optional[constr(max_length=255)] = None
    medium: Optional[constr(max_length=255)] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: Optional[str]) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Title cannot be empty")
        return value

    @field_validator("description", "artist_name", "medium")
    @classmethod
    def strip_optional(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)

    def changes(self) -> Dict[str, Any]:
        """The fields the requester actually set."""
        return self.model_dump(exclude_unset=True)


class ProvenanceRequestCreate(BaseModel):
    """Schema for asking an artwork's owner for a provenance update or ownership."""

    model_config = ConfigDict(extra="forbid")

    request_type: ProvenanceRequestType = ProvenanceRequestType.PROVENANCE_UPDATE
    update_fields: ProvenanceUpdateFields = Field(default_factory=ProvenanceUpdateFields)
    message: Optional[constr(max_length=2000)] = None

    @field_validator("message")
    @classmethod
    def strip_message(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)

    @model_validator(mode="after")
    def check_fields_match_type(self) -> "ProvenanceRequestCreate":
        has_changes = bool(self.update_fields.changes())
        if self.request_type == ProvenanceRequestType.OWNERSHIP_REQUEST and has_changes:
            raise ValueError("Ownership requests cannot change artwork fields")
        if self.request_type == ProvenanceRequestType.PROVENANCE_UPDATE and not has_changes:
            raise ValueError("At least one field must be updated")
        return self


class ProvenanceRequestReview(BaseModel):
    """Schema for the owner approving or denying a request."""

    model_config = ConfigDict(extra="forbid")

    approved: bool
    message: Optional[constr(max_length=2000)] = Field(
        None, description="Optional note shown to the requester"
    )

    @field_validator("message")
    @classmethod
    def strip_message(cls, value: Optional[str]) -> Optional[str]:
        return _strip_or_none(value)
