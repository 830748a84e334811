"""User repository for persistence and authentication lookups."""

from __future__ import annotations

from typing import cast

from sqlalchemy import or_, select

from authapi.models.user import User
from authapi.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER handles tokens, only DB-level user management.
    """

    model = User

    def get_by_username_or_email(self, identifier: str) -> User | None:
        """Fetch a user whose username or (normalised) email matches.

        :param identifier: Username or email address.
        :type identifier: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        value = identifier.strip()
        stmt = select(User).where(or_(User.username == value, User.email == value.lower()))
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with the provided email exists."""
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def exists_by_username(self, username: str) -> bool:
        """Return ``True`` when a user with the provided username exists."""
        stmt = select(User.id).where(User.username == username.strip())
        return bool(self.session.execute(stmt).first())
