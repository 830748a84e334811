"""
Compact HMAC-SHA256 token signing and verification.

Tokens are JWS compact strings: ``base64url(header).base64url(payload).base64url(mac)``
where ``mac = HMAC-SHA256(header + "." + payload, secret)``. Both functions
are pure and safe to call from any worker without synchronization.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import jwt

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("sub", "iat", "exp")

# Expiry is checked against the caller's clock below, not PyJWT's wall clock.
_DECODE_OPTIONS: dict[str, Any] = {
    "verify_signature": True,
    "verify_exp": False,
    "verify_iat": False,
    "verify_nbf": False,
    "require": list(REQUIRED_CLAIMS),
}


class TokenError(Exception):
    """Base class for verification failures."""


class MalformedTokenError(TokenError):
    """The token cannot be decoded into header, payload and signature."""


class SignatureInvalidError(TokenError):
    """The MAC does not match, or the header names another algorithm."""


class TokenExpiredError(TokenError):
    """The current time is past the token's ``exp`` claim."""


def sign(claims: Mapping[str, Any], secret: str) -> str:
    """
    Sign a claim set and return the compact token string.

    :param claims: JSON-serializable claims.
    :param secret: HMAC secret; must be non-empty.
    :returns: Compact token.
    :raises ValueError: If ``secret`` is empty.
    """
    if not secret:
        raise ValueError("Signing secret must be non-empty.")
    return jwt.encode(dict(claims), secret, algorithm=ALGORITHM)


def verify(token: str, secret: str, *, now: datetime | None = None) -> dict[str, Any]:
    """
    Check a token's MAC, structure and expiry, returning its claims.

    :param token: Compact token string.
    :param secret: HMAC secret used at signing time.
    :param now: Reference time for the expiry check (defaults to UTC now).
    :returns: Decoded claim set.
    :raises MalformedTokenError: Token is not decodable or lacks required claims.
    :raises SignatureInvalidError: MAC mismatch or unexpected algorithm.
    :raises TokenExpiredError: ``now`` is past ``exp``.
    """
    if not isinstance(token, str) or not token:
        raise MalformedTokenError("empty token")
    try:
        claims: dict[str, Any] = jwt.decode(
            token, secret, algorithms=[ALGORITHM], options=_DECODE_OPTIONS
        )
    # InvalidSignatureError subclasses DecodeError: order matters
    except jwt.InvalidSignatureError as exc:
        raise SignatureInvalidError(str(exc)) from exc
    except jwt.InvalidAlgorithmError as exc:
        raise SignatureInvalidError(str(exc)) from exc
    except jwt.InvalidTokenError as exc:
        raise MalformedTokenError(str(exc)) from exc

    exp = claims["exp"]
    if isinstance(exp, bool) or not isinstance(exp, int | float):
        raise MalformedTokenError("exp claim must be numeric")

    current = (now or datetime.now(UTC)).timestamp()
    if current > exp:
        raise TokenExpiredError(f"token expired at {int(exp)}")
    return claims
