"""Test configuration and fixtures."""

from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from artifact_catalog.api import app
from artifact_catalog.db.base import Base, build_engine, get_db

ALICE = "alice@example.com"
BOB = "bob@example.com"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """A fresh in-memory SQLite database per test."""
    from artifact_catalog.db import models  # noqa: F401

    test_engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    """TestClient whose requests use the per-test database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


def owner_headers(owner: str) -> Dict[str, str]:
    return {"X-Owner-Email": owner}


@pytest.fixture
def alice() -> Dict[str, str]:
    return owner_headers(ALICE)


@pytest.fixture
def bob() -> Dict[str, str]:
    return owner_headers(BOB)
