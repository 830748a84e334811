"""Pytest fixtures for the token lifecycle test-suite.

Each app-level test gets a fresh application bound to its own in-memory SQLite
database, so stored token pairs never leak between cases.
"""

from __future__ import annotations

import os
from datetime import timedelta

import pytest
from authapi.core.config import TestingConfig
from authapi.core.extensions import db as _db
from authapi.factory import create_app
from authapi.security.issuer import TokenIssuer
from authapi.services._shared.ports import (
    InMemorySubjectDirectory,
    InMemoryTokenStore,
    SubjectView,
)
from authapi.services.tokens import RequestGate, RotationEngine, TokenIssuanceService

from tests.helpers.utils import SECRET, FrozenClock


# --------------------------------------------------------------------------- #
# Pure (framework-free) fixtures
# --------------------------------------------------------------------------- #


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def subject() -> SubjectView:
    return SubjectView(id="subject-1", roles=("USER",), enabled=True)


@pytest.fixture
def subjects(subject) -> InMemorySubjectDirectory:
    return InMemorySubjectDirectory([subject])


@pytest.fixture
def store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(
        secret=SECRET,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
    )


@pytest.fixture
def issuance(issuer, store, clock) -> TokenIssuanceService:
    return TokenIssuanceService(issuer=issuer, store=store, clock=clock)


@pytest.fixture
def rotation(store, subjects, issuance, clock) -> RotationEngine:
    return RotationEngine(
        store=store, subjects=subjects, issuance=issuance, secret=SECRET, clock=clock
    )


@pytest.fixture
def gate(store, clock) -> RequestGate:
    return RequestGate(
        secret=SECRET,
        store=store,
        public_paths=("/", "/api/v1/health", "/api/v1/auth/login"),
        public_prefixes=("/static/",),
        clock=clock,
    )


# --------------------------------------------------------------------------- #
# Flask application fixtures
# --------------------------------------------------------------------------- #


class AppTestConfig(TestingConfig):
    """Testing configuration pinned to the SQL store and in-memory SQLite."""

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    TOKEN_STORE_BACKEND = "sql"
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app_config() -> type[TestingConfig]:
    """Override in a module to run the app against another configuration."""
    return AppTestConfig


@pytest.fixture
def app(app_config):
    """Create a Flask application with a fresh schema.

    Yields
    ------
    flask.Flask
        Application with an active app context and all tables created.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(app_config, instance_relative_config=False)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    """Return the Flask-scoped session and wire Factory Boy to it."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(_db.session)
    yield _db.session
    SQLAlchemySession.set(None)
