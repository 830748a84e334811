"""Persisted access/refresh token pairs."""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from authapi.core.extensions import db

from .base import CreatedAtMixin, PKMixin, ReprMixin

TOKEN_MAX_LENGTH = 1024


class TokenPair(PKMixin, ReprMixin, CreatedAtMixin, db.Model):
    """
    One issuance event: an access token, its refresh token and a revocation flag.

    Rows are append-only. ``blacklisted`` is the single mutable column and is
    only ever flipped to ``True`` by a conditional ``UPDATE``.
    """

    __tablename__ = "token_pairs"

    access_token: Mapped[str] = mapped_column(String(TOKEN_MAX_LENGTH), nullable=False)
    refresh_token: Mapped[str] = mapped_column(String(TOKEN_MAX_LENGTH), nullable=False)
    blacklisted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint("access_token", name="uq_token_pairs_access_token"),
        UniqueConstraint("refresh_token", name="uq_token_pairs_refresh_token"),
        Index("ix_token_pairs_created_at", "created_at"),
    )
