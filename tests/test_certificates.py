"""
Tests for certificate number generation.

Verifies:
- Format of client-side numbers
- Collision retry and bounded exhaustion
- Database generator preference and fallback
- Uniqueness across many artworks
"""

import re
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from provenance_registry.config import Settings
from provenance_registry.db.services import ArtworkService
from provenance_registry.registry.certificates import (
    BASE36_ALPHABET,
    CertificateNumberGenerator,
    random_base36,
)
from provenance_registry.registry.enums import UserRole
from provenance_registry.registry.results import CertificateNumberError

NUMBER_PATTERN = re.compile(r"^PROV-[0-9A-Z]{8}$")


def _settings(**overrides) -> Settings:
    return Settings(**overrides)


def _seed_artwork(db_session, owner, certificate_number):
    return ArtworkService(db_session).create_artwork(
        account_id=owner.id,
        title="Existing",
        certificate_number=certificate_number,
        certificate_type="ownership",
        certificate_status="pending_artist_claim",
    )


class SequenceTokens:
    """Token factory returning a fixed sequence, recording each call."""

    def __init__(self, *tokens):
        self.tokens = list(tokens)
        self.calls = 0

    def __call__(self, length):
        self.calls += 1
        return self.tokens[min(self.calls, len(self.tokens)) - 1]


class TestRandomBase36:
    def test_length_and_alphabet(self):
        token = random_base36(8)
        assert len(token) == 8
        assert set(token) <= set(BASE36_ALPHABET)

    def test_alphabet_is_uppercase_base36(self):
        assert BASE36_ALPHABET == "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


class TestClientSideGeneration:
    def test_number_format(self, db_session):
        number = CertificateNumberGenerator(db_session).generate()
        assert NUMBER_PATTERN.match(number)

    def test_custom_prefix_and_length(self, db_session):
        generator = CertificateNumberGenerator(
            db_session,
            settings=_settings(certificate_number_prefix="COA-", certificate_number_length=5),
        )
        assert re.match(r"^COA-[0-9A-Z]{5}$", generator.generate())

    def test_retries_after_collision(self, db_session, make_account):
        owner = make_account(UserRole.COLLECTOR)
        _seed_artwork(db_session, owner, "PROV-AAAAAAAA")
        tokens = SequenceTokens("AAAAAAAA", "BBBBBBBB")

        number = CertificateNumberGenerator(db_session, token_factory=tokens).generate()

        assert number == "PROV-BBBBBBBB"
        assert tokens.calls == 2

    def test_exhaustion_is_bounded(self, db_session, make_account):
        owner = make_account(UserRole.COLLECTOR)
        _seed_artwork(db_session, owner, "PROV-AAAAAAAA")
        tokens = SequenceTokens("AAAAAAAA")
        generator = CertificateNumberGenerator(
            db_session,
            settings=_settings(certificate_number_max_attempts=4),
            token_factory=tokens,
        )

        with pytest.raises(CertificateNumberError) as exc_info:
            generator.generate()

        assert tokens.calls == 4
        assert exc_info.value.attempts == 4
        assert "after 4 attempts" in exc_info.value.message

    def test_sqlite_skips_database_generator(self, db_session):
        generator = CertificateNumberGenerator(
            db_session, settings=_settings(use_database_certificate_generator=True)
        )
        assert generator._database_generator_available() is False


class TestDatabaseGenerator:
    """The database function is preferred on PostgreSQL; failures fall back."""

    @pytest.fixture
    def pg_session(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "postgresql"
        db.begin_nested.return_value.__exit__.return_value = False
        return db

    def test_uses_database_value(self, pg_session):
        pg_session.execute.return_value.scalar.return_value = "PROV-DB000001"

        number = CertificateNumberGenerator(pg_session).generate()

        assert number == "PROV-DB000001"
        pg_session.begin_nested.assert_called_once()

    def test_falls_back_on_error(self, pg_session):
        pg_session.execute.side_effect = OperationalError(
            "SELECT generate_certificate_number()", {}, Exception("no such function")
        )
        generator = CertificateNumberGenerator(
            pg_session, token_factory=SequenceTokens("ZZZZZZZZ")
        )
        generator.artworks.certificate_number_exists = lambda number: False

        assert generator.generate() == "PROV-ZZZZZZZZ"

    def test_falls_back_on_empty_value(self, pg_session):
        pg_session.execute.return_value.scalar.return_value = None
        generator = CertificateNumberGenerator(
            pg_session, token_factory=SequenceTokens("YYYYYYYY")
        )
        generator.artworks.certificate_number_exists = lambda number: False

        assert generator.generate() == "PROV-YYYYYYYY"

    def test_disabled_by_settings(self, pg_session):
        generator = CertificateNumberGenerator(
            pg_session,
            settings=_settings(use_database_certificate_generator=False),
            token_factory=SequenceTokens("XXXXXXXX"),
        )
        generator.artworks.certificate_number_exists = lambda number: False

        assert generator.generate() == "PROV-XXXXXXXX"
        pg_session.execute.assert_not_called()


class TestUniqueness:
    def test_numbers_unique_across_artworks(self, make_account, post_artwork):
        poster = make_account(UserRole.GALLERY)

        numbers = [
            post_artwork(poster, title=f"Work {i}")["certificate_number"]
            for i in range(50)
        ]

        assert len(set(numbers)) == len(numbers)
        assert all(NUMBER_PATTERN.match(n) for n in numbers)
