"""Single-use refresh rotation."""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from datetime import datetime

from authapi.security.signer import (
    MalformedTokenError,
    SignatureInvalidError,
    TokenExpiredError,
    verify,
)
from authapi.services._shared.ports.subject_directory import SubjectDirectory
from authapi.services._shared.ports.token_store import RevokeResult, TokenStore
from authapi.services.tokens.issuance import TokenIssuanceService, utcnow
from authapi.services.tokens.outcomes import Denied, DenialReason, Rotated, RotationOutcome

log = logging.getLogger(__name__)


class RotationEngine:
    """
    Exchange a presented ``(access, refresh)`` pair for a new one, at most once.

    Stages, in order (first failure wins):

    1. ``verify``   -- refresh token signature and expiry.
    2. ``lookup``   -- a stored pair owns the refresh token.
    3. ``match``    -- the stored access token equals the presented one.
    4. ``revoked``  -- the stored pair is not blacklisted yet.
    5. ``subject``  -- the owner still exists and is enabled.
    6. ``revoke``   -- ``try_revoke`` performs the transition for *this* caller.
    7. ``reissue``  -- mint and save the replacement.

    Stages 6 and 7 share one ``store.atomic()`` scope. When several callers
    present the same pair concurrently they may all pass 1-5, but only the
    one whose ``try_revoke`` flips the flag reaches stage 7.
    """

    def __init__(
        self,
        *,
        store: TokenStore,
        subjects: SubjectDirectory,
        issuance: TokenIssuanceService,
        secret: str,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.subjects = subjects
        self.issuance = issuance
        self.secret = secret
        self.clock = clock

    def rotate(self, access_token: str, refresh_token: str) -> RotationOutcome:
        """
        Run the rotation state machine.

        :returns: :class:`Rotated` with the new pair, or :class:`Denied`.
        :raises StoreUnavailableError: If the store fails mid-way.
        """
        try:
            claims = verify(refresh_token, self.secret, now=self.clock())
        except TokenExpiredError:
            return self._deny(DenialReason.EXPIRED, "verify")
        except SignatureInvalidError:
            return self._deny(DenialReason.SIGNATURE_INVALID, "verify")
        except MalformedTokenError:
            return self._deny(DenialReason.MALFORMED, "verify")

        stored = self.store.find_by_refresh_token(refresh_token)
        if stored is None:
            return self._deny(DenialReason.NOT_FOUND, "lookup")

        if not hmac.compare_digest(stored.access_token.encode(), access_token.encode()):
            return self._deny(DenialReason.MISMATCH, "match", pair_id=stored.id)
        if claims.get("sub") != stored.subject_id:
            return self._deny(DenialReason.MISMATCH, "match", pair_id=stored.id)

        if stored.blacklisted:
            # Replay of an already-rotated pair
            return self._deny(DenialReason.REVOKED, "revoked", pair_id=stored.id)

        subject = self.subjects.get(stored.subject_id)
        if subject is None or not subject.enabled:
            return self._deny(DenialReason.SUBJECT_DISABLED, "subject", pair_id=stored.id)

        with self.store.atomic():
            if self.store.try_revoke(stored.id) is not RevokeResult.REVOKED:
                # Lost the race to a concurrent caller
                return self._deny(DenialReason.ALREADY_REVOKED, "revoke", pair_id=stored.id)
            replacement = self.issuance.mint_and_save(subject)

        log.info(
            "token.rotate.ok",
            extra={"subject_id": subject.id, "pair_id": replacement.id},
        )
        return Rotated(pair=replacement)

    @staticmethod
    def _deny(reason: DenialReason, stage: str, *, pair_id: int | None = None) -> Denied:
        log.info(
            "token.rotate.denied",
            extra={"reason": reason.value, "stage": stage, "pair_id": pair_id},
        )
        return Denied(reason)
