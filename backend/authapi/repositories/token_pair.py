"""Token pair repository: lookups, the conditional revoke and purging."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, exists, select, update

from authapi.models.token_pair import TokenPair
from authapi.repositories.base import BaseRepository


class TokenPairRepository(BaseRepository[TokenPair]):
    """Persistence-only repository for :class:`TokenPair`."""

    model = TokenPair

    def get_by_access_token(self, token: str) -> TokenPair | None:
        stmt = (
            select(TokenPair)
            .where(TokenPair.access_token == token)
            .execution_options(populate_existing=True)
        )
        return cast(TokenPair | None, self.session.execute(stmt).scalars().first())

    def get_by_refresh_token(self, token: str) -> TokenPair | None:
        stmt = (
            select(TokenPair)
            .where(TokenPair.refresh_token == token)
            .execution_options(populate_existing=True)
        )
        return cast(TokenPair | None, self.session.execute(stmt).scalars().first())

    def token_value_exists(self, *values: str) -> bool:
        """Return ``True`` if any value is stored as an access or refresh token."""
        stmt = select(
            exists().where(
                TokenPair.access_token.in_(values) | TokenPair.refresh_token.in_(values)
            )
        )
        return bool(self.session.execute(stmt).scalar())

    def blacklist_if_active(self, pair_id: int) -> bool:
        """
        Flip ``blacklisted`` to ``True`` with a single conditional ``UPDATE``.

        The ``WHERE blacklisted = false`` predicate is re-evaluated by the
        database under the row lock, so concurrent callers cannot both win.

        :returns: ``True`` if this call performed the transition.
        """
        stmt = (
            update(TokenPair)
            .where(TokenPair.id == pair_id, TokenPair.blacklisted.is_(False))
            .values(blacklisted=True)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    def delete_created_before(self, cutoff: datetime) -> int:
        """Hard-delete pairs created before ``cutoff``. :returns: rows removed."""
        stmt = (
            delete(TokenPair)
            .where(TokenPair.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)  # type: ignore[attr-defined]
