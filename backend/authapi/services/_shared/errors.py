"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. The translation to RFC 7807 responses happens in
``authapi/core/errors.py``.

Token *denials* are not exceptions: verification and rotation report them as
:class:`~authapi.services.tokens.outcomes.Denied` values. The errors below
cover the remaining failures (conflicts, bad credentials, store trouble).
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer translates them to ``APIError`` responses.
    """


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


class InvalidCredentialsError(ServiceError):
    """Raised when login credentials do not match an enabled subject."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class DuplicateTokenError(ServiceError):
    """
    Raised by a token store when an access or refresh token value already exists.

    Internal and retryable: the issuer mints a fresh pair and saves again.
    """


class StoreUnavailableError(ServiceError):
    """Raised when the token store backend cannot be reached or fails."""
