from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from authapi.core.extensions import db
from authapi.repositories import UserRepository
from authapi.services._shared.ports.subject_directory import SubjectDirectory, SubjectView


class SqlSubjectDirectory(SubjectDirectory):
    """Expose ``users`` rows to the token core as :class:`SubjectView` values."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or (lambda: db.session)

    def get(self, subject_id: str) -> SubjectView | None:
        user = UserRepository(session=self._session_factory()).get(subject_id)
        if user is None:
            return None
        return SubjectView(id=user.id, roles=tuple(user.roles or ()), enabled=bool(user.enabled))
