# tests/unit/services/test_auth_service.py
from __future__ import annotations

from datetime import UTC, datetime

import pytest
from authapi.infra.sql import SqlTokenStore
from authapi.security.signer import verify
from authapi.services._shared.errors import ConflictError, InvalidCredentialsError
from authapi.services._shared.ports import RevokeResult
from authapi.services.auth.dto import LoginIn, RegisterIn, TokenPairOut
from authapi.services.auth.service import AuthService
from authapi.services.tokens import AuthContext, TokenIssuanceService

from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.utils import SECRET


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def sql_store(app) -> SqlTokenStore:
    return SqlTokenStore()


@pytest.fixture()
def service(issuer, sql_store) -> AuthService:
    """Build an AuthService on the SQL store with the real wall clock."""
    issuance = TokenIssuanceService(issuer=issuer, store=sql_store)
    return AuthService(issuance=issuance, store=sql_store)


def _ctx(sql_store, pair: TokenPairOut) -> AuthContext:
    record = sql_store.find_by_access_token(pair.access_token)
    return AuthContext(
        subject_id=record.subject_id,
        roles=("USER",),
        pair_id=record.id,
        expires_at=datetime.now(UTC),
    )


# -------------------------------- Tests ----------------------------------- #
def test_register_creates_user_and_first_pair(service, sql_store, session):
    pair = service.register(RegisterIn(username="ada", email="Ada@Example.com", password="s3cret-pw"))

    assert pair.token_type == "Bearer"
    claims = verify(pair.access_token, SECRET)
    assert claims["roles"] == ["USER"]
    record = sql_store.find_by_access_token(pair.access_token)
    assert record.subject_id == claims["sub"]
    assert record.refresh_token == pair.refresh_token


@pytest.mark.parametrize(
    "dto",
    [
        RegisterIn(username="user0", email="fresh@example.com", password="s3cret-pw"),
        RegisterIn(username="fresh", email="user0@example.com", password="s3cret-pw"),
    ],
)
def test_register_conflicts_on_taken_username_or_email(service, session, dto):
    UserFactory(username="user0", email="user0@example.com")

    with pytest.raises(ConflictError):
        service.register(dto)


@pytest.mark.parametrize("identifier", ["login-user", "login@example.com", "LOGIN@example.com"])
def test_login_by_username_or_email(service, session, identifier):
    user = UserFactory(username="login-user", email="login@example.com")

    pair = service.login(LoginIn(username_or_email=identifier, password=DEFAULT_PASSWORD))

    assert verify(pair.refresh_token, SECRET)["sub"] == user.id


def test_login_issues_a_new_pair_each_time(service, session):
    user = UserFactory()

    first = service.login(LoginIn(username_or_email=user.username, password=DEFAULT_PASSWORD))
    second = service.login(LoginIn(username_or_email=user.username, password=DEFAULT_PASSWORD))

    assert first.access_token != second.access_token


@pytest.mark.parametrize(
    ("identifier", "password", "enabled"),
    [
        ("nobody", DEFAULT_PASSWORD, True),
        ("user-x", "wrong-password", True),
        ("user-x", DEFAULT_PASSWORD, False),
    ],
)
def test_login_rejections_are_indistinguishable(service, session, identifier, password, enabled):
    UserFactory(username="user-x", enabled=enabled)

    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(username_or_email=identifier, password=password))


def test_logout_revokes_the_presented_pair_once(service, sql_store, session):
    user = UserFactory()
    pair = service.login(LoginIn(username_or_email=user.username, password=DEFAULT_PASSWORD))
    ctx = _ctx(sql_store, pair)

    assert service.logout(ctx) is RevokeResult.REVOKED
    assert service.logout(ctx) is RevokeResult.ALREADY_REVOKED
    assert sql_store.is_access_token_blacklisted(pair.access_token) is True


def test_whoami_echoes_the_context(service):
    ctx = AuthContext(subject_id="s-1", roles=("USER",), pair_id=1, expires_at=datetime.now(UTC))

    who = service.whoami(ctx)

    assert who.subject_id == "s-1"
    assert who.roles == ("USER",)
