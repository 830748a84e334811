"""
Tagged outcomes for token verification and rotation.

Internal callers branch on these values; the HTTP boundary collapses every
:class:`Denied` into one generic 401 so the reason never reaches a client.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from authapi.services._shared.ports.token_store import TokenPairRecord


class DenialReason(Enum):
    """Why a token or a refresh request was refused (logs and tests only)."""

    MISSING_CREDENTIALS = "missing_credentials"
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    REVOKED = "revoked"
    ALREADY_REVOKED = "already_revoked"
    MISMATCH = "mismatch"
    SUBJECT_DISABLED = "subject_disabled"


@dataclass(frozen=True, slots=True)
class AuthContext:
    """
    Request-scoped authorization context handed to downstream code.

    :ivar subject_id: Authenticated subject.
    :ivar roles: Role labels from the access token.
    :ivar pair_id: Stored pair the access token belongs to.
    :ivar expires_at: Access token expiry (UTC).
    """

    subject_id: str
    roles: tuple[str, ...]
    pair_id: int
    expires_at: datetime

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True, slots=True)
class Denied:
    reason: DenialReason


@dataclass(frozen=True, slots=True)
class Granted:
    context: AuthContext


@dataclass(frozen=True, slots=True)
class Bypassed:
    """The request targets a public path; no credentials were inspected."""


@dataclass(frozen=True, slots=True)
class Rotated:
    pair: TokenPairRecord


GateOutcome = Granted | Bypassed | Denied
RotationOutcome = Rotated | Denied
