"""Request gate hook: every non-public request must carry a live access token."""

from __future__ import annotations

import logging

from flask import Flask, g, request

from authapi.api.deps import AUTH_CONTEXT_ATTR
from authapi.core.errors import Unauthorized
from authapi.services.tokens.outcomes import Denied, Granted
from authapi.wiring import get_services

log = logging.getLogger(__name__)


def enforce_token_gate() -> None:
    """``before_request`` hook running the :class:`RequestGate`.

    CORS preflight requests carry no credentials and are let through.
    A :class:`StoreUnavailableError` propagates and becomes a 503.
    """
    if request.method == "OPTIONS":
        return None

    outcome = get_services().gate.authorize(
        request.path, request.headers.get("Authorization")
    )
    if isinstance(outcome, Denied):
        # The reason is logged by the gate; clients get one generic answer
        raise Unauthorized()
    if isinstance(outcome, Granted):
        setattr(g, AUTH_CONTEXT_ATTR, outcome.context)
    return None


def init_app(app: Flask) -> None:
    """Install the gate ahead of every view."""
    app.before_request(enforce_token_gate)
