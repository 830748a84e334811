from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, auto
from typing import Protocol

from authapi.services._shared.errors import DuplicateTokenError


class RevokeResult(Enum):
    """Outcome of an atomic ``blacklisted: false -> true`` transition attempt."""

    REVOKED = auto()
    ALREADY_REVOKED = auto()
    NOT_FOUND = auto()


@dataclass(frozen=True, slots=True)
class NewTokenPair:
    """
    A freshly minted pair that has not been persisted yet.

    :ivar subject_id: Owner subject identifier (weak reference).
    :ivar access_token: Signed access token.
    :ivar refresh_token: Signed refresh token.
    :ivar created_at: Issuance time (UTC).
    """

    subject_id: str
    access_token: str
    refresh_token: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class TokenPairRecord:
    """
    Read-model for one stored issuance event.

    :ivar id: Store-assigned identifier.
    :ivar subject_id: Owner subject identifier.
    :ivar access_token: Signed access token.
    :ivar refresh_token: Signed refresh token.
    :ivar blacklisted: Revocation flag; only ever goes from False to True.
    :ivar created_at: Issuance time (UTC).
    """

    id: int
    subject_id: str
    access_token: str
    refresh_token: str
    blacklisted: bool
    created_at: datetime


class TokenStore(Protocol):
    """
    Stateful store of issued token pairs and their revocation flag.

    Implementations MUST be safe under concurrent callers, and
    :meth:`try_revoke` MUST be a single atomic conditional update.
    Writes are expected to run inside :meth:`atomic`.
    """

    def atomic(self) -> AbstractContextManager[None]:
        """Transactional scope for one or more writes."""
        ...

    def save(self, pair: NewTokenPair) -> TokenPairRecord:
        """
        Persist ``pair`` and assign its identifier.

        :raises DuplicateTokenError: If either token value is already stored.
        """
        ...

    def find_by_access_token(self, token: str) -> TokenPairRecord | None: ...

    def find_by_refresh_token(self, token: str) -> TokenPairRecord | None: ...

    def try_revoke(self, pair_id: int) -> RevokeResult:
        """Blacklist ``pair_id`` only if it is not blacklisted yet."""
        ...

    def is_access_token_blacklisted(self, token: str) -> bool:
        """Return ``True`` when revoked **or unknown** (default deny)."""
        ...

    def purge_created_before(self, cutoff: datetime) -> int:
        """Delete pairs created before ``cutoff``. :returns: rows removed."""
        ...


class InMemoryTokenStore(TokenStore):
    """
    In-memory token store.

    .. note::
       A single lock makes every operation, including ``try_revoke``, atomic.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, TokenPairRecord] = {}
        self._by_access: dict[str, int] = {}
        self._by_refresh: dict[str, int] = {}
        self._seq = 0
        self._lock = threading.Lock()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        # Operations are individually atomic; no rollback journal.
        yield

    def save(self, pair: NewTokenPair) -> TokenPairRecord:
        with self._lock:
            if pair.access_token in self._by_access or pair.refresh_token in self._by_refresh:
                raise DuplicateTokenError("token value already stored")
            # A value reused across roles would still break lookups
            if pair.access_token in self._by_refresh or pair.refresh_token in self._by_access:
                raise DuplicateTokenError("token value already stored")
            self._seq += 1
            record = TokenPairRecord(
                id=self._seq,
                subject_id=pair.subject_id,
                access_token=pair.access_token,
                refresh_token=pair.refresh_token,
                blacklisted=False,
                created_at=pair.created_at,
            )
            self._by_id[record.id] = record
            self._by_access[record.access_token] = record.id
            self._by_refresh[record.refresh_token] = record.id
            return record

    def find_by_access_token(self, token: str) -> TokenPairRecord | None:
        with self._lock:
            pair_id = self._by_access.get(token)
            return self._by_id.get(pair_id) if pair_id is not None else None

    def find_by_refresh_token(self, token: str) -> TokenPairRecord | None:
        with self._lock:
            pair_id = self._by_refresh.get(token)
            return self._by_id.get(pair_id) if pair_id is not None else None

    def try_revoke(self, pair_id: int) -> RevokeResult:
        with self._lock:
            record = self._by_id.get(pair_id)
            if record is None:
                return RevokeResult.NOT_FOUND
            if record.blacklisted:
                return RevokeResult.ALREADY_REVOKED
            self._by_id[pair_id] = replace(record, blacklisted=True)
            return RevokeResult.REVOKED

    def is_access_token_blacklisted(self, token: str) -> bool:
        record = self.find_by_access_token(token)
        return record is None or record.blacklisted

    def purge_created_before(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [r for r in self._by_id.values() if r.created_at < cutoff]
            for record in stale:
                del self._by_id[record.id]
                self._by_access.pop(record.access_token, None)
                self._by_refresh.pop(record.refresh_token, None)
            return len(stale)
