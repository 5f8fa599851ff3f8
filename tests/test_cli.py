"""Tests for the ``provenance-registry`` CLI commands."""

import pytest
from typer.testing import CliRunner

from provenance_registry.cli import app
from provenance_registry.registry.enums import UserRole

runner = CliRunner()


@pytest.fixture
def cli_session(db_session, monkeypatch):
    """Point the CLI at the test session."""
    monkeypatch.setattr(
        "provenance_registry.cli.get_session_local", lambda: (lambda: db_session)
    )
    return db_session


class TestShowAccount:
    def test_shows_role_label(self, cli_session, make_account):
        account = make_account(UserRole.GALLERY, name="Atelier Nord")
        result = runner.invoke(app, ["show-account", account.id])
        assert result.exit_code == 0
        assert "Gallery" in result.output

    def test_onboarding_pending(self, cli_session, make_account):
        account = make_account(role=None, name="Newcomer")
        result = runner.invoke(app, ["show-account", account.id])
        assert result.exit_code == 0
        assert "Unassigned" in result.output

    def test_missing_account(self, cli_session):
        result = runner.invoke(app, ["show-account", "missing"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestShowArtwork:
    def test_shows_certificate(self, cli_session, post_artwork, collector):
        artwork = post_artwork(collector, title="Harbor")
        result = runner.invoke(app, ["show-artwork", artwork["id"]])
        assert result.exit_code == 0
        assert artwork["certificate_number"] in result.output

    def test_missing_artwork(self, cli_session):
        result = runner.invoke(app, ["show-artwork", "missing"])
        assert result.exit_code == 1


class TestNotifications:
    def test_empty(self, cli_session, make_account):
        account = make_account(UserRole.ARTIST)
        result = runner.invoke(app, ["notifications", account.id])
        assert result.exit_code == 0
        assert "No notifications" in result.output
