"""
Validated access to the account attributes blob.

Roles and the admin flag are stored inside ``accounts.public_data``, a
free-form JSON map. Nothing outside this module reads those keys directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from .enums import UserRole

ROLE_KEY = "role"
ADMIN_KEY = "admin"

ROLE_LABELS = {
    UserRole.ARTIST: "Artist",
    UserRole.COLLECTOR: "Collector",
    UserRole.GALLERY: "Gallery",
}


@dataclass(frozen=True)
class ResolvedRole:
    """Role resolved from an attributes blob. ``role`` is None when unset or invalid."""

    role: Optional[UserRole]

    @property
    def is_set(self) -> bool:
        return self.role is not None

    def is_(self, *roles: UserRole) -> bool:
        return self.role is not None and self.role in roles


def is_valid_role(value: Any) -> bool:
    """Check if a raw value names a known role."""
    if not isinstance(value, str) or not value:
        return False
    return value in {r.value for r in UserRole}


def resolve_role(public_data: Optional[Mapping[str, Any]]) -> ResolvedRole:
    """Resolve the role stored in an account's public_data."""
    if not public_data:
        return ResolvedRole(None)
    raw = public_data.get(ROLE_KEY)
    if not is_valid_role(raw):
        return ResolvedRole(None)
    return ResolvedRole(UserRole(raw))


def is_admin(public_data: Optional[Mapping[str, Any]]) -> bool:
    """Only a literal ``true`` admin flag counts."""
    if not public_data:
        return False
    return public_data.get(ADMIN_KEY) is True


def with_role(public_data: Optional[Mapping[str, Any]], role: UserRole) -> Dict[str, Any]:
    """Return a copy of public_data with the role replaced.

    A new dict is returned so SQLAlchemy sees the JSON column as changed.
    """
    updated = dict(public_data or {})
    updated[ROLE_KEY] = role.value
    return updated


def role_label(role: Optional[UserRole]) -> str:
    if role is None:
        return "Unassigned"
    return ROLE_LABELS[role]


def without_privileged_keys(public_data: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Copy of caller-supplied attributes with the role and admin keys removed.

    The role is set through onboarding only and the admin flag is granted
    out of band, never from a registration payload.
    """
    return {
        key: value
        for key, value in (public_data or {}).items()
        if key not in (ROLE_KEY, ADMIN_KEY)
    }
