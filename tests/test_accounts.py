"""Tests for account registration and role onboarding."""

import pytest

from provenance_registry.db.audit_service import AuditService
from provenance_registry.db.services import AccountService
from provenance_registry.registry.accounts import AccountOnboarding
from provenance_registry.registry.enums import UserRole
from provenance_registry.registry.schemas import AccountCreate


@pytest.fixture
def onboarding(db_session) -> AccountOnboarding:
    return AccountOnboarding(db_session)


class TestRegister:
    def test_register_without_role(self, onboarding):
        result = onboarding.register(AccountCreate(name="  Jane Doe ", email="jane@example.com"))

        assert result.success
        account = result.data["account"]
        assert account["name"] == "Jane Doe"
        assert account["role"] is None
        assert account["is_admin"] is False

    def test_register_with_role_and_id(self, onboarding):
        result = onboarding.register(
            AccountCreate(id="auth-123", name="North Gallery", role=UserRole.GALLERY)
        )

        assert result.data["account"]["id"] == "auth-123"
        assert result.data["account"]["role"] == "gallery"

    def test_role_stored_in_public_data(self, onboarding, db_session):
        onboarding.register(
            AccountCreate(id="auth-1", name="Sam", role=UserRole.COLLECTOR, public_data={"city": "Oslo"})
        )
        account = AccountService(db_session).get_account("auth-1")
        assert account.public_data == {"city": "Oslo", "role": "collector"}

    def test_duplicate_id(self, onboarding):
        onboarding.register(AccountCreate(id="auth-1", name="Sam"))
        result = onboarding.register(AccountCreate(id="auth-1", name="Sam again"))
        assert result.kind == "conflict"
        assert result.error == "Account already exists"

    def test_duplicate_email(self, onboarding):
        onboarding.register(AccountCreate(name="Sam", email="sam@example.com"))
        result = onboarding.register(AccountCreate(name="Other Sam", email="sam@example.com"))
        assert result.kind == "conflict"
        assert result.error == "Email is already registered"

    def test_registration_cannot_grant_admin(self, onboarding, db_session):
        result = onboarding.register(
            AccountCreate(id="auth-9", name="Root", public_data={"admin": True, "city": "Oslo"})
        )

        assert result.success
        assert result.data["account"]["is_admin"] is False
        stored = AccountService(db_session).get_account("auth-9")
        assert stored.public_data == {"city": "Oslo"}

    def test_role_only_from_role_field(self, onboarding, db_session):
        without_role = onboarding.register(
            AccountCreate(id="auth-10", name="Sneaky", public_data={"role": "gallery"})
        )
        assert without_role.data["account"]["role"] is None

        with_role = onboarding.register(
            AccountCreate(
                id="auth-11",
                name="Jane",
                role=UserRole.ARTIST,
                public_data={"role": "gallery"},
            )
        )
        assert with_role.data["account"]["role"] == "artist"


class TestUpdateRole:
    def test_onboarding_sets_role(self, onboarding, make_account, db_session):
        account = make_account(role=None)

        result = onboarding.update_role(account.id, UserRole.ARTIST, account.id)

        assert result.success
        assert result.data["account"]["role"] == "artist"
        entries = AuditService(db_session).query_by_entity("Account", account.id)
        assert entries[0].note == "Onboarding completed"
        assert entries[0].before == {"role": None}
        assert entries[0].after == {"role": "artist"}

    def test_role_change_is_audited(self, onboarding, make_account, db_session):
        account = make_account(UserRole.COLLECTOR)

        onboarding.update_role(account.id, UserRole.GALLERY, account.id)

        entries = AuditService(db_session).query_by_entity("Account", account.id)
        assert entries[0].note == "Role changed"
        assert entries[0].before == {"role": "collector"}

    def test_cannot_change_someone_else(self, onboarding, make_account):
        target = make_account(UserRole.COLLECTOR)
        other = make_account(UserRole.GALLERY)

        result = onboarding.update_role(target.id, UserRole.ARTIST, other.id)

        assert result.kind == "forbidden"
        assert result.error == "You can only change your own role"

    def test_requires_sign_in(self, onboarding, make_account):
        target = make_account(UserRole.COLLECTOR)
        result = onboarding.update_role(target.id, UserRole.ARTIST, None)
        assert result.kind == "unauthorized"
