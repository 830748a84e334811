"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

STORE_BACKENDS: Final[frozenset[str]] = frozenset({"sql", "redis", "memory"})

# Loads .env in development (no-op when missing)
load_dotenv()


class ConfigError(ValueError):
    """Raised when the token configuration surface is invalid."""


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable.

    :raises ConfigError: If the variable is set but not an integer.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {val!r}") from None


def env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Parse a comma-separated list from an environment variable."""
    val = os.getenv(name)
    if val is None:
        return default
    return tuple(item.strip() for item in val.split(",") if item.strip())


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    JWT_SECRET_KEY: str
        Process-wide HMAC-SHA256 signing secret. Required and non-empty.
    ACCESS_TOKEN_TTL_MS: int
        Access token lifetime in milliseconds (15 minutes by default).
    REFRESH_TOKEN_TTL_MS: int
        Refresh token lifetime in milliseconds (7 days by default).
    TOKEN_STORE_BACKEND: str
        ``"sql"`` (default), ``"redis"`` or ``"memory"``.
    TOKEN_RETENTION_DAYS: int
        Default age used by ``flask tokens purge``.
    PUBLIC_PATHS: tuple[str, ...]
        Exact request paths that bypass the request gate.
    PUBLIC_PATH_PREFIXES: tuple[str, ...]
        Path prefixes that bypass the request gate.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    REDIS_URL: str | None
        Redis connection URL, required by the ``redis`` store backend.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / token lifetimes
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
    ACCESS_TOKEN_TTL_MS = env_int("ACCESS_TOKEN_TTL_MS", 15 * 60 * 1000)
    REFRESH_TOKEN_TTL_MS = env_int("REFRESH_TOKEN_TTL_MS", 7 * 24 * 60 * 60 * 1000)

    # Token store
    TOKEN_STORE_BACKEND = os.getenv("TOKEN_STORE_BACKEND", "sql").strip().lower()
    TOKEN_RETENTION_DAYS = env_int("TOKEN_RETENTION_DAYS", 30)
    REDIS_URL = os.getenv("REDIS_URL") or None

    # Request gate
    PUBLIC_PATHS = env_list(
        "PUBLIC_PATHS",
        (
            "/",
            "/api/v1/health",
            "/api/v1/auth/register",
            "/api/v1/auth/login",
            "/api/v1/auth/token",
        ),
    )
    PUBLIC_PATH_PREFIXES = env_list("PUBLIC_PATH_PREFIXES", ())

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Falls back to a throwaway signing secret so ``flask run`` works out of the
    box; never use it outside a workstation.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-only-signing-secret-change-me-0001")
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "testing-signing-secret-0123456789abcdef"
    TOKEN_STORE_BACKEND = "sql"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    REDIS_URL = None
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    ``JWT_SECRET_KEY`` has no fallback here: startup fails when it is unset.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


@dataclass(frozen=True, slots=True)
class TokenSettings:
    """
    Validated token configuration surface.

    :ivar secret: HMAC signing secret (non-empty).
    :ivar access_ttl_ms: Access token lifetime in milliseconds (> 0).
    :ivar refresh_ttl_ms: Refresh token lifetime in milliseconds (> 0).
    """

    secret: str
    access_ttl_ms: int
    refresh_ttl_ms: int

    def __post_init__(self) -> None:
        if not isinstance(self.secret, str) or not self.secret.strip():
            raise ConfigError("JWT_SECRET_KEY must be a non-empty string")
        for name in ("access_ttl_ms", "refresh_ttl_ms"):
            value = getattr(self, name)
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")

    @property
    def access_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.access_ttl_ms)

    @property
    def refresh_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.refresh_ttl_ms)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> TokenSettings:
        """Build settings from a Flask config mapping.

        :raises ConfigError: If any value is missing or invalid.
        """
        return cls(
            secret=config.get("JWT_SECRET_KEY") or "",
            access_ttl_ms=config.get("ACCESS_TOKEN_TTL_MS"),  # type: ignore[arg-type]
            refresh_ttl_ms=config.get("REFRESH_TOKEN_TTL_MS"),  # type: ignore[arg-type]
        )
