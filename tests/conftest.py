"""Test configuration and fixtures."""

import itertools
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from provenance_registry.db import AccountModel, Base, get_db
from provenance_registry.db.services import AccountService
from provenance_registry.registry.enums import UserRole
from provenance_registry.registry.lifecycle import CertificateLifecycle
from provenance_registry.registry.schemas import ArtworkCreate


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def make_account(db_session) -> Callable[..., AccountModel]:
    """Factory for accounts with an optional role."""
    counter = itertools.count(1)

    def _make(role: Optional[UserRole] = None, name: Optional[str] = None, **kwargs):
        n = next(counter)
        if name is None:
            name = f"{role.value.title() if role else 'Member'} {n}"
        return AccountService(db_session).create_account(name=name, role=role, **kwargs)

    return _make


@pytest.fixture
def artist(make_account) -> AccountModel:
    return make_account(UserRole.ARTIST, name="Jane Doe")


@pytest.fixture
def collector(make_account) -> AccountModel:
    return make_account(UserRole.COLLECTOR, name="Sam Collector")


@pytest.fixture
def gallery(make_account) -> AccountModel:
    return make_account(UserRole.GALLERY, name="North Gallery")


@pytest.fixture
def lifecycle(db_session) -> CertificateLifecycle:
    return CertificateLifecycle(db_session)


@pytest.fixture
def post_artwork(lifecycle) -> Callable[..., dict]:
    """Post an artwork as ``poster`` and return its dict, failing the test on error."""

    def _post(poster: AccountModel, title: str = "Untitled", **fields) -> dict:
        result = lifecycle.create_artwork(ArtworkCreate(title=title, **fields), poster.id)
        assert result.success, result.error
        return result.data["artwork"]

    return _post


@pytest.fixture
def client(db_session) -> Generator[TestClient, None, None]:
    """API client sharing the test session."""
    from provenance_registry.api import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
