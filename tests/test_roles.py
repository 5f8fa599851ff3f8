"""Tests for role resolution from the account attributes blob."""

import pytest

from provenance_registry.registry.enums import UserRole
from provenance_registry.registry.roles import (
    is_admin,
    is_valid_role,
    resolve_role,
    role_label,
    with_role,
    without_privileged_keys,
)


class TestResolveRole:
    @pytest.mark.parametrize("role", list(UserRole))
    def test_valid_roles(self, role):
        resolved = resolve_role({"role": role.value})
        assert resolved.role == role
        assert resolved.is_set
        assert resolved.is_(role)

    @pytest.mark.parametrize(
        "public_data",
        [None, {}, {"role": ""}, {"role": "curator"}, {"role": 3}, {"role": "ARTIST"}],
    )
    def test_unset_or_invalid(self, public_data):
        resolved = resolve_role(public_data)
        assert resolved.role is None
        assert not resolved.is_set
        assert not resolved.is_(UserRole.ARTIST, UserRole.COLLECTOR, UserRole.GALLERY)

    def test_is_matches_any(self):
        resolved = resolve_role({"role": "gallery"})
        assert resolved.is_(UserRole.COLLECTOR, UserRole.GALLERY)
        assert not resolved.is_(UserRole.ARTIST)


class TestHelpers:
    def test_is_valid_role(self):
        assert is_valid_role("artist")
        assert not is_valid_role("admin")
        assert not is_valid_role(None)

    @pytest.mark.parametrize(
        "public_data,expected",
        [
            ({"admin": True}, True),
            ({"admin": "true"}, False),
            ({"admin": 1}, False),
            ({}, False),
            (None, False),
        ],
    )
    def test_is_admin_requires_literal_true(self, public_data, expected):
        assert is_admin(public_data) is expected

    def test_with_role_returns_new_dict(self):
        original = {"role": "collector", "bio": "hello"}
        updated = with_role(original, UserRole.ARTIST)
        assert updated == {"role": "artist", "bio": "hello"}
        assert original["role"] == "collector"
        assert updated is not original

    def test_role_label(self):
        assert role_label(UserRole.GALLERY) == "Gallery"
        assert role_label(None) == "Unassigned"

    def test_without_privileged_keys(self):
        incoming = {"admin": True, "role": "gallery", "city": "Oslo"}
        assert without_privileged_keys(incoming) == {"city": "Oslo"}
        assert incoming["admin"] is True
        assert without_privileged_keys(None) == {}
