"""SQLAlchemy-backed token store (the default backend)."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from authapi.core.extensions import db
from authapi.models.token_pair import TokenPair
from authapi.repositories import TokenPairRepository
from authapi.services._shared.errors import DuplicateTokenError, StoreUnavailableError
from authapi.services._shared.ports.token_store import (
    NewTokenPair,
    RevokeResult,
    TokenPairRecord,
    TokenStore,
)
from authapi.uow import SQLAlchemyUnitOfWork


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; stored values are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_record(row: TokenPair) -> TokenPairRecord:
    return TokenPairRecord(
        id=row.id,
        subject_id=row.user_id,
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        blacklisted=bool(row.blacklisted),
        created_at=_as_utc(row.created_at),
    )


@contextmanager
def _guard() -> Iterator[None]:
    try:
        yield
    except OperationalError as exc:
        raise StoreUnavailableError("token store is unavailable") from exc


class SqlTokenStore(TokenStore):
    """
    Token store on the ``token_pairs`` table.

    :meth:`atomic` opens a :class:`SQLAlchemyUnitOfWork` and is re-entrant per
    thread: nested scopes join the outer one, which commits once on exit.
    Writes called outside any scope commit on their own.

    :param session_factory: Returns the session to use. Defaults to the
        Flask-scoped ``db.session``.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or (lambda: db.session)
        self._local = threading.local()

    def _repo(self) -> TokenPairRepository:
        return TokenPairRepository(session=self._session_factory())

    @contextmanager
    def atomic(self) -> Iterator[None]:
        depth = getattr(self._local, "depth", 0)
        if depth:
            self._local.depth = depth + 1
            try:
                yield
            finally:
                self._local.depth = depth
            return

        with _guard(), SQLAlchemyUnitOfWork(self._session_factory()):
            self._local.depth = 1
            try:
                yield
            finally:
                self._local.depth = 0

    def save(self, pair: NewTokenPair) -> TokenPairRecord:
        with self.atomic():
            repo = self._repo()
            # Unique constraints are per column; also reject cross-role reuse
            if repo.token_value_exists(pair.access_token, pair.refresh_token):
                raise DuplicateTokenError("token value already stored")
            row = TokenPair(
                user_id=pair.subject_id,
                access_token=pair.access_token,
                refresh_token=pair.refresh_token,
                blacklisted=False,
                created_at=pair.created_at,
            )
            try:
                # Savepoint: a collision must not undo an enclosing revoke
                with repo.session.begin_nested():
                    repo.session.add(row)
                    repo.session.flush()
            except IntegrityError as exc:
                raise DuplicateTokenError("token value already stored") from exc
            return _to_record(row)

    def find_by_access_token(self, token: str) -> TokenPairRecord | None:
        with _guard():
            row = self._repo().get_by_access_token(token)
        return _to_record(row) if row is not None else None

    def find_by_refresh_token(self, token: str) -> TokenPairRecord | None:
        with _guard():
            row = self._repo().get_by_refresh_token(token)
        return _to_record(row) if row is not None else None

    def try_revoke(self, pair_id: int) -> RevokeResult:
        with self.atomic():
            repo = self._repo()
            if repo.blacklist_if_active(pair_id):
                return RevokeResult.REVOKED
            if repo.get(pair_id) is None:
                return RevokeResult.NOT_FOUND
            return RevokeResult.ALREADY_REVOKED

    def is_access_token_blacklisted(self, token: str) -> bool:
        record = self.find_by_access_token(token)
        return record is None or record.blacklisted

    def purge_created_before(self, cutoff: datetime) -> int:
        with self.atomic():
            return self._repo().delete_created_before(cutoff)
