"""
authapi.services._shared.ports
==============================

Collection of *ports* (hexagonal interfaces) the token core depends on.

Modules
-------
- :mod:`token_store`:
    Defines :class:`~.TokenStore`, :class:`~.RevokeResult` and the
    :class:`~.TokenPairRecord` read-model, plus :class:`~.InMemoryTokenStore`.

- :mod:`subject_directory`:
    Defines :class:`~.SubjectDirectory` and the narrow :class:`~.SubjectView`
    capability (id, roles, enabled).

Concrete adapters (SQL, Redis) live under ``authapi.infra``.
"""

from __future__ import annotations

from .subject_directory import InMemorySubjectDirectory, SubjectDirectory, SubjectView
from .token_store import (
    InMemoryTokenStore,
    NewTokenPair,
    RevokeResult,
    TokenPairRecord,
    TokenStore,
)

__all__ = [
    "TokenStore",
    "TokenPairRecord",
    "NewTokenPair",
    "RevokeResult",
    "InMemoryTokenStore",
    "SubjectDirectory",
    "SubjectView",
    "InMemorySubjectDirectory",
]
