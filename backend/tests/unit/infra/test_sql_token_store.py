"""Tests for the SQLAlchemy token store against SQLite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from authapi.core.extensions import db
from authapi.infra.sql import SqlSubjectDirectory, SqlTokenStore
from authapi.models import TokenPair, User
from authapi.services._shared.errors import DuplicateTokenError, StoreUnavailableError
from authapi.services._shared.ports import NewTokenPair, RevokeResult
from sqlalchemy import create_engine, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import scoped_session, sessionmaker

from tests.factories.user import UserFactory
from tests.helpers.utils import run_concurrently

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def user(session):
    return UserFactory()


@pytest.fixture
def sql_store(app) -> SqlTokenStore:
    return SqlTokenStore()


def _pair(user, n: int, *, created_at: datetime = T0) -> NewTokenPair:
    return NewTokenPair(
        subject_id=user.id,
        access_token=f"access-{n}",
        refresh_token=f"refresh-{n}",
        created_at=created_at,
    )


def test_save_commits_and_returns_utc_record(sql_store, user, session):
    record = sql_store.save(_pair(user, 1))

    session.expire_all()
    row = session.execute(select(TokenPair).where(TokenPair.id == record.id)).scalar_one()
    assert row.access_token == "access-1"
    assert record.created_at == T0
    assert record.created_at.tzinfo is not None
    assert sql_store.find_by_refresh_token("refresh-1") == record


def test_duplicate_values_raise_without_touching_existing_rows(sql_store, user):
    original = sql_store.save(_pair(user, 1))

    with pytest.raises(DuplicateTokenError):
        sql_store.save(NewTokenPair(user.id, "access-1", "other", T0))
    with pytest.raises(DuplicateTokenError):
        sql_store.save(NewTokenPair(user.id, "refresh-1", "other", T0))

    assert sql_store.find_by_access_token("access-1") == original


def test_try_revoke_is_conditional(sql_store, user):
    record = sql_store.save(_pair(user, 1))

    assert sql_store.try_revoke(record.id) is RevokeResult.REVOKED
    assert sql_store.try_revoke(record.id) is RevokeResult.ALREADY_REVOKED
    assert sql_store.try_revoke(record.id + 100) is RevokeResult.NOT_FOUND
    assert sql_store.find_by_access_token("access-1").blacklisted is True
    assert sql_store.is_access_token_blacklisted("access-1") is True
    assert sql_store.is_access_token_blacklisted("never-issued") is True


def test_duplicate_inside_atomic_keeps_earlier_revoke(sql_store, user):
    old = sql_store.save(_pair(user, 1))
    sql_store.save(_pair(user, 2))

    with sql_store.atomic():
        assert sql_store.try_revoke(old.id) is RevokeResult.REVOKED
        with pytest.raises(DuplicateTokenError):
            sql_store.save(_pair(user, 2))
        replacement = sql_store.save(_pair(user, 3))

    assert sql_store.find_by_access_token("access-1").blacklisted is True
    assert sql_store.find_by_access_token("access-3") == replacement


def test_error_inside_atomic_rolls_back(sql_store, user):
    old = sql_store.save(_pair(user, 1))

    with pytest.raises(RuntimeError), sql_store.atomic():
        sql_store.try_revoke(old.id)
        raise RuntimeError("boom")

    assert sql_store.find_by_access_token("access-1").blacklisted is False


def test_purge_deletes_rows_created_before_cutoff(sql_store, user):
    sql_store.save(_pair(user, 1, created_at=T0 - timedelta(days=31)))
    sql_store.save(_pair(user, 2, created_at=T0))

    assert sql_store.purge_created_before(T0 - timedelta(days=30)) == 1
    assert sql_store.find_by_access_token("access-1") is None
    assert sql_store.find_by_access_token("access-2") is not None


def test_operational_error_becomes_store_unavailable(app, monkeypatch):
    from authapi.repositories import TokenPairRepository

    def broken(self, token):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(TokenPairRepository, "get_by_access_token", broken)

    with pytest.raises(StoreUnavailableError):
        SqlTokenStore().find_by_access_token("anything")


def test_subject_directory_maps_users(user, session):
    directory = SqlSubjectDirectory()

    view = directory.get(user.id)

    assert view.id == user.id
    assert view.roles == ("USER",)
    assert view.enabled is True
    assert directory.get("00000000-0000-0000-0000-000000000000") is None


def test_subject_directory_reports_disabled_users(session):
    user = UserFactory(enabled=False)

    assert SqlSubjectDirectory().get(user.id).enabled is False


@pytest.fixture
def file_backed_store(tmp_path):
    """SQL store on a SQLite file so each thread gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'token_pairs.db'}", connect_args={"timeout": 30}
    )
    db.metadata.create_all(engine)
    sessions = scoped_session(sessionmaker(bind=engine))
    try:
        yield SqlTokenStore(session_factory=sessions), sessions
    finally:
        sessions.remove()
        engine.dispose()


def test_concurrent_try_revoke_has_a_single_winner(file_backed_store):
    store, sessions = file_backed_store
    owner = User(username="racer", email="racer@example.com", password_hash="x")
    sessions.add(owner)
    sessions.commit()
    record = store.save(_pair(owner, 1))
    sessions.remove()

    def revoke() -> RevokeResult:
        try:
            return store.try_revoke(record.id)
        finally:
            sessions.remove()

    results = run_concurrently(revoke, parties=8)

    assert results.count(RevokeResult.REVOKED) == 1
    assert results.count(RevokeResult.ALREADY_REVOKED) == 7
    assert store.find_by_access_token("access-1").blacklisted is True
