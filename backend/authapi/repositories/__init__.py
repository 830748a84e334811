"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from authapi.repositories.base import BaseRepository
from authapi.repositories.token_pair import TokenPairRepository
from authapi.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "TokenPairRepository",
    "UserRepository",
]
