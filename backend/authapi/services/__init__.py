"""Service layer public API.

Re-exports
----------
- Token lifecycle (from ``authapi.services.tokens``)
    * :class:`TokenIssuanceService`, :class:`RotationEngine`, :class:`RequestGate`
    * Outcomes: :class:`Granted`, :class:`Denied`, :class:`Bypassed`, :class:`Rotated`

- Auth service (from ``authapi.services.auth``)
    * :class:`AuthService`
    * DTOs: :class:`RegisterIn`, :class:`LoginIn`, :class:`TokenPairOut`
"""

from __future__ import annotations

from .auth.dto import LoginIn, RegisterIn, TokenPairOut, WhoAmIOut
from .auth.service import AuthService
from .tokens import (
    AuthContext,
    Bypassed,
    Denied,
    DenialReason,
    Granted,
    RequestGate,
    Rotated,
    RotationEngine,
    TokenIssuanceService,
)

__all__ = [
    "AuthContext",
    "AuthService",
    "Bypassed",
    "Denied",
    "DenialReason",
    "Granted",
    "LoginIn",
    "RegisterIn",
    "RequestGate",
    "Rotated",
    "RotationEngine",
    "TokenIssuanceService",
    "TokenPairOut",
    "WhoAmIOut",
]
