"""Shared API helpers for responses, timing and the auth context."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from authapi.core.errors import Unauthorized
from authapi.services.tokens.outcomes import AuthContext

F = TypeVar("F", bound=Callable[..., Any])

AUTH_CONTEXT_ATTR = "auth_context"


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def current_auth_context() -> AuthContext | None:
    """Return the context the request gate attached, if any."""

    return g.get(AUTH_CONTEXT_ATTR)


def with_auth_context(func: F) -> F:
    """Pass the gate's :class:`AuthContext` to the view as ``ctx``.

    Raises the generic 401 when the gate did not grant the request (for
    example on a route that was configured as public by mistake).
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        ctx = current_auth_context()
        if ctx is None:
            raise Unauthorized()
        return func(*args, ctx=ctx, **kwargs)

    return wrapper  # type: ignore[return-value]
