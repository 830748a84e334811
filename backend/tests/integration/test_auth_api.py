"""End-to-end tests of the token lifecycle over HTTP."""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import authapi.security.issuer as issuer_module
import pytest
from authapi.core.extensions import db
from authapi.models import TokenPair
from authapi.services._shared.errors import StoreUnavailableError
from freezegun import freeze_time
from sqlalchemy import delete, func, select

from tests.helpers.utils import bearer

pytestmark = pytest.mark.integration

REGISTER = "/api/v1/auth/register"
LOGIN = "/api/v1/auth/login"
TOKEN = "/api/v1/auth/token"
LOGOUT = "/api/v1/auth/logout"
ME = "/api/v1/auth/me"


def _register(client, username="alice", email="alice@example.com", password="correct-horse"):
    resp = client.post(REGISTER, json={"username": username, "email": email, "password": password})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _rotate(client, pair):
    return client.post(
        TOKEN,
        json={"access_token": pair["access_token"], "refresh_token": pair["refresh_token"]},
    )


def _assert_generic_401(resp):
    assert resp.status_code == 401
    body = resp.get_json()
    assert body["code"] == "unauthorized"
    assert body["detail"] == "Unauthorized"
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_health_is_public(client):
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_register_returns_a_working_pair(client):
    pair = _register(client)

    assert pair["token_type"] == "Bearer"
    me = client.get(ME, headers=bearer(pair["access_token"]))
    assert me.status_code == 200
    assert me.get_json()["data"]["roles"] == ["USER"]


def test_register_conflict_and_validation(client):
    _register(client)

    dup = client.post(
        REGISTER,
        json={"username": "alice", "email": "other@example.com", "password": "correct-horse"},
    )
    bad = client.post(REGISTER, json={"username": "al", "email": "nope", "password": "short"})

    assert dup.status_code == 409
    assert bad.status_code == 422
    assert set(bad.get_json()["details"]["errors"]) == {"username", "email", "password"}


def test_login_with_username_or_email(client):
    _register(client)

    by_name = client.post(LOGIN, json={"username_or_email": "alice", "password": "correct-horse"})
    by_mail = client.post(
        LOGIN, json={"username_or_email": "alice@example.com", "password": "correct-horse"}
    )
    wrong = client.post(LOGIN, json={"username_or_email": "alice", "password": "nope-nope"})

    assert by_name.status_code == 200
    assert by_mail.status_code == 200
    _assert_generic_401(wrong)


def test_protected_route_requires_bearer(client):
    _assert_generic_401(client.get(ME))
    _assert_generic_401(client.get(ME, headers={"Authorization": "Token abc"}))
    _assert_generic_401(client.get(ME, headers=bearer("not-a-token")))


def test_unknown_routes_are_gated_too(client):
    # Default deny: the gate runs before routing decides on a 404
    _assert_generic_401(client.get("/api/v1/nothing-here"))


def test_refresh_then_replay(client):
    original = _register(client)

    first = _rotate(client, original)
    replay = _rotate(client, original)

    assert first.status_code == 200
    fresh = first.get_json()["data"]
    assert fresh["access_token"] != original["access_token"]
    _assert_generic_401(replay)
    # Old access token is revoked, new one works
    _assert_generic_401(client.get(ME, headers=bearer(original["access_token"])))
    assert client.get(ME, headers=bearer(fresh["access_token"])).status_code == 200
    # The replacement pair is itself single use
    assert _rotate(client, fresh).status_code == 200


def test_rotation_with_mismatched_pair_is_rejected(client):
    a = _register(client)
    b = _register(client, username="bob", email="bob@example.com")

    resp = client.post(
        TOKEN, json={"access_token": b["access_token"], "refresh_token": a["refresh_token"]}
    )

    _assert_generic_401(resp)
    assert _rotate(client, a).status_code == 200


def test_rotation_payload_is_validated(client):
    resp = client.post(TOKEN, json={"refresh_token": "x"})

    assert resp.status_code == 422


def test_logout_revokes_pair(client):
    pair = _register(client)

    resp = client.post(LOGOUT, headers=bearer(pair["access_token"]))

    assert resp.status_code == 204
    _assert_generic_401(client.get(ME, headers=bearer(pair["access_token"])))
    _assert_generic_401(_rotate(client, pair))


def test_wiped_store_denies_valid_tokens(client, app):
    pair = _register(client)

    db.session.execute(delete(TokenPair))
    db.session.commit()

    _assert_generic_401(client.get(ME, headers=bearer(pair["access_token"])))
    _assert_generic_401(_rotate(client, pair))


def test_access_expiry_then_refresh(client, app):
    access_ttl = timedelta(milliseconds=app.config["ACCESS_TOKEN_TTL_MS"])
    with freeze_time("2026-05-01 10:00:00") as frozen:
        pair = _register(client)
        assert client.get(ME, headers=bearer(pair["access_token"])).status_code == 200

        frozen.tick(access_ttl + timedelta(seconds=1))

        _assert_generic_401(client.get(ME, headers=bearer(pair["access_token"])))
        rotated = _rotate(client, pair)
        assert rotated.status_code == 200
        new_access = rotated.get_json()["data"]["access_token"]
        assert client.get(ME, headers=bearer(new_access)).status_code == 200


def test_refresh_token_expiry_forces_login(client, app):
    refresh_ttl = timedelta(milliseconds=app.config["REFRESH_TOKEN_TTL_MS"])
    with freeze_time("2026-05-01 10:00:00") as frozen:
        pair = _register(client)
        frozen.tick(refresh_ttl + timedelta(seconds=1))

        _assert_generic_401(_rotate(client, pair))
        relogin = client.post(
            LOGIN, json={"username_or_email": "alice", "password": "correct-horse"}
        )
        assert relogin.status_code == 200


def test_cors_preflight_is_not_gated(client):
    resp = client.open(
        ME,
        method="OPTIONS",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "Authorization",
        },
    )

    assert resp.status_code == 200
    assert "Access-Control-Allow-Origin" in resp.headers


# --------------------------------------------------------------------------- #
# Store failures are server-side errors, never authentication failures
# --------------------------------------------------------------------------- #


def _store(app):
    return app.extensions["token_services"].store


def _unavailable(*_args, **_kwargs):
    raise StoreUnavailableError("token store unreachable")


def _assert_problem(resp, status, code):
    assert resp.status_code == status
    body = resp.get_json()
    assert body["code"] == code
    assert "WWW-Authenticate" not in resp.headers


def test_store_outage_during_rotation_is_503(client, app, monkeypatch):
    pair = _register(client)
    monkeypatch.setattr(_store(app), "find_by_refresh_token", _unavailable)

    resp = _rotate(client, pair)

    _assert_problem(resp, 503, "service_unavailable")


def test_store_outage_during_gated_request_is_503(client, app, monkeypatch):
    pair = _register(client)
    monkeypatch.setattr(_store(app), "find_by_access_token", _unavailable)

    resp = client.get(ME, headers=bearer(pair["access_token"]))

    _assert_problem(resp, 503, "service_unavailable")


def test_store_outage_during_login_is_503(client, app, monkeypatch):
    _register(client)
    monkeypatch.setattr(_store(app), "save", _unavailable)

    resp = client.post(LOGIN, json={"username_or_email": "alice", "password": "correct-horse"})

    _assert_problem(resp, 503, "service_unavailable")


def test_persistent_token_collisions_are_500(client, app, monkeypatch):
    fixed = SimpleNamespace(hex="c0ffee" * 5 + "00")
    monkeypatch.setattr(issuer_module, "uuid4", lambda: fixed)
    credentials = {"username_or_email": "alice", "password": "correct-horse"}

    with freeze_time("2026-05-01 10:00:00"):
        _register(client)
        # Same instant and jti as the registration pair: every attempt collides
        resp = client.post(LOGIN, json=credentials)

    _assert_problem(resp, 500, "internal_server_error")
    assert resp.get_json()["detail"] == "Unexpected error"
    assert db.session.scalar(select(func.count()).select_from(TokenPair)) == 1
