"""Compose the token services for a Flask application."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import Flask, current_app

from authapi.core.config import STORE_BACKENDS, ConfigError, TokenSettings
from authapi.core.extensions import get_redis
from authapi.infra.redis import RedisTokenStore
from authapi.infra.sql import SqlSubjectDirectory, SqlTokenStore
from authapi.security.issuer import TokenIssuer
from authapi.services._shared.ports import InMemoryTokenStore, SubjectDirectory, TokenStore
from authapi.services.auth.service import AuthService
from authapi.services.tokens import RequestGate, RotationEngine, TokenIssuanceService

log = logging.getLogger(__name__)

EXTENSION_KEY = "token_services"


@dataclass(frozen=True, slots=True)
class TokenServices:
    """Process-wide token components shared by every request."""

    settings: TokenSettings
    store: TokenStore
    subjects: SubjectDirectory
    issuance: TokenIssuanceService
    rotation: RotationEngine
    gate: RequestGate
    auth: AuthService


def build_store(app: Flask) -> TokenStore:
    """Instantiate the backend named by ``TOKEN_STORE_BACKEND``.

    :raises ConfigError: If the backend name is unknown.
    """
    backend = str(app.config.get("TOKEN_STORE_BACKEND", "sql")).strip().lower()
    if backend not in STORE_BACKENDS:
        raise ConfigError(
            f"TOKEN_STORE_BACKEND must be one of {sorted(STORE_BACKENDS)}, got {backend!r}"
        )
    if backend == "redis":
        return RedisTokenStore(get_redis())
    if backend == "memory":
        return InMemoryTokenStore()
    return SqlTokenStore()


def build_services(app: Flask) -> TokenServices:
    """Validate token settings and wire the component graph.

    :raises ConfigError: On an empty secret, non-positive TTLs or an unknown backend.
    """
    settings = TokenSettings.from_mapping(app.config)
    store = build_store(app)
    subjects = SqlSubjectDirectory()
    issuer = TokenIssuer(
        secret=settings.secret,
        access_ttl=settings.access_ttl,
        refresh_ttl=settings.refresh_ttl,
    )
    issuance = TokenIssuanceService(issuer=issuer, store=store)
    rotation = RotationEngine(
        store=store,
        subjects=subjects,
        issuance=issuance,
        secret=settings.secret,
    )
    gate = RequestGate(
        secret=settings.secret,
        store=store,
        public_paths=app.config.get("PUBLIC_PATHS", ()),
        public_prefixes=app.config.get("PUBLIC_PATH_PREFIXES", ()),
    )
    auth = AuthService(issuance=issuance, store=store)
    return TokenServices(
        settings=settings,
        store=store,
        subjects=subjects,
        issuance=issuance,
        rotation=rotation,
        gate=gate,
        auth=auth,
    )


def init_app(app: Flask) -> None:
    """Build the services once and keep them in ``app.extensions``."""
    services = build_services(app)
    app.extensions[EXTENSION_KEY] = services
    log.info("token.services.ready store=%s", type(services.store).__name__)


def get_services() -> TokenServices:
    """Return the services bound to the current application."""
    return current_app.extensions[EXTENSION_KEY]
