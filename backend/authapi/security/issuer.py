"""Claim-set construction for access and refresh tokens."""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from authapi.security.signer import sign

if TYPE_CHECKING:
    from authapi.services._shared.ports.subject_directory import SubjectView


def _random_jti() -> str:
    return uuid4().hex


def _epoch(moment: datetime) -> int:
    return int(moment.timestamp())


def _expiry(moment: datetime, ttl: timedelta) -> int:
    # Round up so a token never expires before ``moment + ttl``
    return math.ceil(moment.timestamp() + ttl.total_seconds())


@dataclass(frozen=True, slots=True)
class TokenIssuer:
    """
    Build claim sets and delegate signing.

    No persistence happens here; callers save the resulting pair.

    :ivar secret: HMAC signing secret.
    :ivar access_ttl: Access token lifetime.
    :ivar refresh_ttl: Refresh token lifetime.
    :ivar jti_factory: Source of the per-token random identifier.
    """

    secret: str
    access_ttl: timedelta
    refresh_ttl: timedelta
    jti_factory: Callable[[], str] = field(default=_random_jti)

    # ------------------------------ claims ------------------------------ #

    def access_claims(self, subject: SubjectView, now: datetime, *, jti: str) -> dict[str, Any]:
        return {
            "sub": subject.id,
            "roles": list(subject.roles),
            "iat": _epoch(now),
            "exp": _expiry(now, self.access_ttl),
            "jti": jti,
        }

    def refresh_claims(self, subject: SubjectView, now: datetime, *, jti: str) -> dict[str, Any]:
        # No roles: refresh tokens never authorize resource access
        return {
            "sub": subject.id,
            "iat": _epoch(now),
            "exp": _expiry(now, self.refresh_ttl),
            "jti": jti,
        }

    # ------------------------------ tokens ------------------------------ #

    def issue_access_token(self, subject: SubjectView, now: datetime) -> str:
        """Sign a fresh access token for ``subject`` issued at ``now``."""
        return sign(self.access_claims(subject, now, jti=self.jti_factory()), self.secret)

    def issue_refresh_token(self, subject: SubjectView, now: datetime) -> str:
        """Sign a fresh refresh token for ``subject`` issued at ``now``."""
        return sign(self.refresh_claims(subject, now, jti=self.jti_factory()), self.secret)
