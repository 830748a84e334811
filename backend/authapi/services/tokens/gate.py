"""Per-request bearer token enforcement (framework-agnostic)."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from authapi.security.signer import (
    MalformedTokenError,
    SignatureInvalidError,
    TokenExpiredError,
    verify,
)
from authapi.services._shared.ports.token_store import TokenStore
from authapi.services.tokens.issuance import utcnow
from authapi.services.tokens.outcomes import (
    AuthContext,
    Bypassed,
    Denied,
    DenialReason,
    GateOutcome,
    Granted,
)

log = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer(header: str | None) -> str | None:
    """
    Return the token carried by an ``Authorization: Bearer ...`` header.

    Surrounding double quotes are stripped (some clients send the token as a
    JSON string). Returns ``None`` when the header is absent or malformed.
    """
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX) :].strip()
    if token.startswith('"'):
        token = token[1:]
    if token.endswith('"'):
        token = token[:-1]
    return token or None


class RequestGate:
    """
    Layer a store allow-list check on top of stateless signature verification.

    A cryptographically valid token is still denied unless the store confirms
    it was issued and has not been revoked.
    """

    def __init__(
        self,
        *,
        secret: str,
        store: TokenStore,
        public_paths: Iterable[str] = (),
        public_prefixes: Iterable[str] = (),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.secret = secret
        self.store = store
        self.public_paths = frozenset(public_paths)
        self.public_prefixes = tuple(public_prefixes)
        self.clock = clock

    def is_public(self, path: str) -> bool:
        if path in self.public_paths:
            return True
        return any(path.startswith(prefix) for prefix in self.public_prefixes)

    def authorize(self, path: str, authorization: str | None) -> GateOutcome:
        """
        Decide whether a request may proceed.

        :param path: Request path.
        :param authorization: Raw ``Authorization`` header value.
        :returns: :class:`Bypassed`, :class:`Granted` or :class:`Denied`.
        :raises StoreUnavailableError: If the store lookup fails.
        """
        if self.is_public(path):
            return Bypassed()

        token = extract_bearer(authorization)
        if token is None:
            return self._deny(DenialReason.MISSING_CREDENTIALS, path)

        try:
            claims = verify(token, self.secret, now=self.clock())
        except TokenExpiredError:
            return self._deny(DenialReason.EXPIRED, path)
        except SignatureInvalidError:
            return self._deny(DenialReason.SIGNATURE_INVALID, path)
        except MalformedTokenError:
            return self._deny(DenialReason.MALFORMED, path)

        stored = self.store.find_by_access_token(token)
        if stored is None:
            # Valid signature but never issued (or purged): invalid token
            return self._deny(DenialReason.NOT_FOUND, path)
        if stored.blacklisted:
            return self._deny(DenialReason.REVOKED, path)

        roles = claims.get("roles") or []
        context = AuthContext(
            subject_id=str(claims["sub"]),
            roles=tuple(str(r) for r in roles),
            pair_id=stored.id,
            expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=UTC),
        )
        return Granted(context)

    @staticmethod
    def _deny(reason: DenialReason, path: str) -> Denied:
        log.info("token.gate.denied", extra={"reason": reason.value, "endpoint": path})
        return Denied(reason)
