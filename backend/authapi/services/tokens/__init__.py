"""Token lifecycle services: issuance, rotation and per-request enforcement."""

from __future__ import annotations

from .gate import RequestGate, extract_bearer
from .issuance import TokenIssuanceService
from .outcomes import (
    AuthContext,
    Bypassed,
    Denied,
    DenialReason,
    GateOutcome,
    Granted,
    Rotated,
    RotationOutcome,
)
from .rotation import RotationEngine

__all__ = [
    "AuthContext",
    "Bypassed",
    "Denied",
    "DenialReason",
    "GateOutcome",
    "Granted",
    "RequestGate",
    "Rotated",
    "RotationEngine",
    "RotationOutcome",
    "TokenIssuanceService",
    "extract_bearer",
]
