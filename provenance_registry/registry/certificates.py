"""
Certificate number generation.

Numbers look like ``PROV-7K2Q9ZXA``: a prefix plus uppercase base36
characters. The database-side ``generate_certificate_number()`` function is
preferred when the backend provides one; otherwise numbers are generated here
and checked against existing artworks, with a bounded number of attempts.
"""

from __future__ import annotations

import secrets
import string
from typing import Callable, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..db.services import ArtworkService
from .results import CertificateNumberError

logger = structlog.get_logger()

BASE36_ALPHABET = string.digits + string.ascii_uppercase

DATABASE_GENERATOR_SQL = "SELECT generate_certificate_number()"


def random_base36(length: int) -> str:
    """Return ``length`` random uppercase base36 characters."""
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


class CertificateNumberGenerator:
    """Produces unique certificate numbers for new artworks."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        token_factory: Optional[Callable[[int], str]] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.token_factory = token_factory or random_base36
        self.artworks = ArtworkService(db)

    def generate(self) -> str:
        """
        Return a certificate number not used by any artwork.

        Raises:
            CertificateNumberError: if every fallback attempt collided.
        """
        number = self._from_database()
        if number:
            return number
        return self._from_client()

    def _database_generator_available(self) -> bool:
        if not self.settings.use_database_certificate_generator:
            return False
        # SQLite has no stored functions
        return self.db.get_bind().dialect.name == "postgresql"

    def _from_database(self) -> Optional[str]:
        if not self._database_generator_available():
            return None

        try:
            # Savepoint keeps the outer transaction usable if the call fails
            with self.db.begin_nested():
                number = self.db.execute(text(DATABASE_GENERATOR_SQL)).scalar()
        except SQLAlchemyError as e:
            logger.warning(
                "Database certificate generator failed, using fallback",
                error=str(e),
            )
            return None

        if not number:
            logger.warning("Database certificate generator returned no value")
            return None
        return str(number)

    def _from_client(self) -> str:
        prefix = self.settings.certificate_number_prefix
        length = self.settings.certificate_number_length
        max_attempts = self.settings.certificate_number_max_attempts

        for attempt in range(1, max_attempts + 1):
            candidate = f"{prefix}{self.token_factory(length)}"
            if not self.artworks.certificate_number_exists(candidate):
                return candidate
            logger.info(
                "Certificate number collision",
                candidate=candidate,
                attempt=attempt,
            )

        logger.error("Certificate number space exhausted", attempts=max_attempts)
        raise CertificateNumberError(max_attempts)
