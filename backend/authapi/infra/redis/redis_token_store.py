# comments in English; reST docstrings
from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

import redis  # type: ignore[import-untyped]

from authapi.services._shared.errors import DuplicateTokenError, StoreUnavailableError
from authapi.services._shared.ports.token_store import (
    NewTokenPair,
    RevokeResult,
    TokenPairRecord,
    TokenStore,
)

T = TypeVar("T")

KEY_SEQ = "tp:seq"
KEY_CREATED = "tp:created"


def _b(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


def _digest(token: str) -> str:
    # Index keys carry a digest, never the token itself
    return hashlib.sha256(token.encode()).hexdigest()


@dataclass(slots=True)
class RedisTokenStore(TokenStore):
    """
    Redis-backed token store.

    Layout:

    - ``tp:{id}`` hash with the pair fields.
    - ``tp:at:{sha256(access)}`` / ``tp:rt:{sha256(refresh)}`` point to the id.
    - ``tp:created`` sorted set of ids scored by issuance time (for purging).

    :meth:`try_revoke` uses WATCH/MULTI/EXEC so the ``blacklisted`` flip is a
    compare-and-set. Redis has no multi-command rollback, so :meth:`atomic`
    is a no-op scope.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(pair_id: int | str) -> str:
        return f"tp:{pair_id}"

    @staticmethod
    def _ka(token: str) -> str:
        return f"tp:at:{_digest(token)}"

    @staticmethod
    def _kr(token: str) -> str:
        return f"tp:rt:{_digest(token)}"

    def _call(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except redis.RedisError as exc:
            raise StoreUnavailableError("token store is unavailable") from exc

    def _load(self, pair_id: int | str) -> TokenPairRecord | None:
        h = self.r.hgetall(self._k(pair_id))
        if not h:
            return None
        fields = {_b(k): _b(v) for k, v in h.items()}
        return TokenPairRecord(
            id=int(pair_id),
            subject_id=fields["subject_id"],
            access_token=fields["access_token"],
            refresh_token=fields["refresh_token"],
            blacklisted=fields.get("blacklisted", "0") == "1",
            created_at=datetime.fromisoformat(fields["created_at"]).astimezone(UTC),
        )

    def _find(self, index_key: str) -> TokenPairRecord | None:
        pair_id = self.r.get(index_key)
        if pair_id is None:
            return None
        return self._load(_b(pair_id))

    # -------------------- API ------------------------

    @contextmanager
    def atomic(self) -> Iterator[None]:
        yield

    def save(self, pair: NewTokenPair) -> TokenPairRecord:
        return self._call(lambda: self._save(pair))

    def _save(self, pair: NewTokenPair) -> TokenPairRecord:
        index_keys = (
            self._ka(pair.access_token),
            self._kr(pair.refresh_token),
            # cross-role reuse
            self._kr(pair.access_token),
            self._ka(pair.refresh_token),
        )
        pair_id = int(self.r.incr(KEY_SEQ))
        created_at = pair.created_at.astimezone(UTC)

        # Retry loop for optimistic locking in case of concurrent modifications
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(*index_keys)
                    if p.exists(*index_keys):
                        p.unwatch()
                        raise DuplicateTokenError("token value already stored")

                    p.multi()
                    p.hset(
                        self._k(pair_id),
                        mapping={
                            "subject_id": pair.subject_id,
                            "access_token": pair.access_token,
                            "refresh_token": pair.refresh_token,
                            "blacklisted": "0",
                            "created_at": created_at.isoformat(),
                        },
                    )
                    p.set(index_keys[0], pair_id)
                    p.set(index_keys[1], pair_id)
                    p.zadd(KEY_CREATED, {str(pair_id): created_at.timestamp()})
                    p.execute()
                break
            except redis.WatchError:
                # Concurrent modification detected; retry loop
                continue

        return TokenPairRecord(
            id=pair_id,
            subject_id=pair.subject_id,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            blacklisted=False,
            created_at=created_at,
        )

    def find_by_access_token(self, token: str) -> TokenPairRecord | None:
        return self._call(lambda: self._find(self._ka(token)))

    def find_by_refresh_token(self, token: str) -> TokenPairRecord | None:
        return self._call(lambda: self._find(self._kr(token)))

    def try_revoke(self, pair_id: int) -> RevokeResult:
        return self._call(lambda: self._try_revoke(pair_id))

    def _try_revoke(self, pair_id: int) -> RevokeResult:
        key = self._k(pair_id)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    flag = p.hget(key, "blacklisted")
                    if flag is None:
                        p.unwatch()
                        return RevokeResult.NOT_FOUND
                    if _b(flag) == "1":
                        p.unwatch()
                        return RevokeResult.ALREADY_REVOKED

                    p.multi()
                    p.hset(key, "blacklisted", "1")
                    p.execute()
                return RevokeResult.REVOKED
            except redis.WatchError:
                # Someone touched the pair; re-read and decide again
                continue

    def is_access_token_blacklisted(self, token: str) -> bool:
        record = self.find_by_access_token(token)
        return record is None or record.blacklisted

    def purge_created_before(self, cutoff: datetime) -> int:
        return self._call(lambda: self._purge(cutoff))

    def _purge(self, cutoff: datetime) -> int:
        # Exclusive upper bound: keep pairs created exactly at the cutoff
        members = self.r.zrangebyscore(KEY_CREATED, "-inf", f"({cutoff.timestamp()}")
        removed = 0
        for member in members:
            pair_id = _b(member)
            record = self._load(pair_id)
            pipe = self.r.pipeline(transaction=True)
            if record is not None:
                pipe.delete(
                    self._k(pair_id),
                    self._ka(record.access_token),
                    self._kr(record.refresh_token),
                )
                removed += 1
            pipe.zrem(KEY_CREATED, pair_id)
            pipe.execute()
        return removed
