"""Run the core HTTP flows against the memory and Redis token stores."""

from __future__ import annotations

import fakeredis
import pytest
from authapi.core import extensions
from authapi.core.config import TestingConfig
from authapi.infra.redis import RedisTokenStore
from authapi.services._shared.ports import InMemoryTokenStore
from authapi.wiring import get_services

from tests.helpers.utils import bearer

pytestmark = pytest.mark.integration


class MemoryStoreConfig(TestingConfig):
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    TOKEN_STORE_BACKEND = "memory"
    LOG_LEVEL = "WARNING"


class RedisStoreConfig(TestingConfig):
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    TOKEN_STORE_BACKEND = "redis"
    REDIS_URL = "redis://localhost:6379/15"
    LOG_LEVEL = "WARNING"


@pytest.fixture(params=["memory", "redis"])
def app_config(request, monkeypatch):
    if request.param == "redis":
        # Hand out an in-memory server instead of connecting
        fake = fakeredis.FakeRedis()
        monkeypatch.setattr(extensions.redis.Redis, "from_url", lambda url, **kw: fake)
        return RedisStoreConfig
    return MemoryStoreConfig


def test_backend_is_selected_by_config(app, app_config):
    expected = RedisTokenStore if app_config is RedisStoreConfig else InMemoryTokenStore
    assert isinstance(get_services().store, expected)


def test_register_rotate_replay(client):
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": "carol", "email": "carol@example.com", "password": "correct-horse"},
    )
    assert resp.status_code == 201
    pair = resp.get_json()["data"]

    body = {"access_token": pair["access_token"], "refresh_token": pair["refresh_token"]}
    first = client.post("/api/v1/auth/token", json=body)
    replay = client.post("/api/v1/auth/token", json=body)

    assert first.status_code == 200
    assert replay.status_code == 401
    new_access = first.get_json()["data"]["access_token"]
    assert client.get("/api/v1/auth/me", headers=bearer(new_access)).status_code == 200
    assert client.get("/api/v1/auth/me", headers=bearer(pair["access_token"])).status_code == 401
