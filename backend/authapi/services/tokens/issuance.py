"""Mint token pairs and persist them in the token store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from authapi.security.issuer import TokenIssuer
from authapi.services._shared.errors import DuplicateTokenError
from authapi.services._shared.ports.subject_directory import SubjectView
from authapi.services._shared.ports.token_store import NewTokenPair, TokenPairRecord, TokenStore

log = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


class TokenIssuanceService:
    """
    Issue access/refresh pairs for a subject and save them.

    A :class:`DuplicateTokenError` from the store is retried with freshly
    minted tokens (new random ``jti``) up to :attr:`MAX_ATTEMPTS` times.
    """

    MAX_ATTEMPTS = 3

    def __init__(
        self,
        *,
        issuer: TokenIssuer,
        store: TokenStore,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.issuer = issuer
        self.store = store
        self.clock = clock

    def issue_pair(self, subject: SubjectView) -> TokenPairRecord:
        """
        Mint and persist a pair in its own transactional scope (login/register).

        :raises DuplicateTokenError: If every attempt collided.
        :raises StoreUnavailableError: If the store is down.
        """
        with self.store.atomic():
            return self.mint_and_save(subject)

    def mint_and_save(self, subject: SubjectView) -> TokenPairRecord:
        """
        Mint and persist a pair inside the caller's transactional scope.

        Used by the rotation engine so the revoke and the replacement commit
        together.
        """
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            now = self.clock()
            pair = NewTokenPair(
                subject_id=subject.id,
                access_token=self.issuer.issue_access_token(subject, now),
                refresh_token=self.issuer.issue_refresh_token(subject, now),
                created_at=now,
            )
            try:
                record = self.store.save(pair)
            except DuplicateTokenError:
                log.warning(
                    "token.issue.duplicate",
                    extra={"subject_id": subject.id, "attempt": attempt},
                )
                continue
            log.info(
                "token.issue.saved",
                extra={"subject_id": subject.id, "pair_id": record.id},
            )
            return record
        raise DuplicateTokenError(f"token collision persisted after {self.MAX_ATTEMPTS} attempts")
