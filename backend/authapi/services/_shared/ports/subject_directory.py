from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class SubjectView:
    """
    The narrow slice of a subject the token core depends on.

    :ivar id: Stable subject identifier (the ``sub`` claim).
    :ivar roles: Role labels embedded in access tokens.
    :ivar enabled: Disabled subjects cannot rotate their tokens.
    """

    id: str
    roles: tuple[str, ...] = ()
    enabled: bool = True


class SubjectDirectory(Protocol):
    """Read-only lookup of subjects by identifier."""

    def get(self, subject_id: str) -> SubjectView | None: ...


class InMemorySubjectDirectory(SubjectDirectory):
    """Dictionary-backed directory used in unit tests and the ``memory`` backend."""

    def __init__(self, subjects: list[SubjectView] | None = None) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, SubjectView] = {s.id: s for s in subjects or []}

    def put(self, subject: SubjectView) -> None:
        with self._lock:
            self._by_id[subject.id] = subject

    def remove(self, subject_id: str) -> None:
        with self._lock:
            self._by_id.pop(subject_id, None)

    def get(self, subject_id: str) -> SubjectView | None:
        with self._lock:
            return self._by_id.get(subject_id)
