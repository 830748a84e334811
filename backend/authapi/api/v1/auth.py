"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, Response, request

from authapi.api.deps import json_response, timing, with_auth_context
from authapi.core.errors import Unauthorized
from authapi.schemas import (
    LoginSchema,
    RegisterSchema,
    RotateSchema,
    TokenPairSchema,
    WhoAmISchema,
)
from authapi.services.auth.dto import LoginIn, RegisterIn, TokenPairOut
from authapi.services.tokens.outcomes import AuthContext, Rotated
from authapi.wiring import get_services

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
rotate_schema = RotateSchema()
token_schema = TokenPairSchema()
whoami_schema = WhoAmISchema()


@bp.post("/register")
@timing
def register():
    """Create an account and return its first token pair."""

    payload = register_schema.load(request.get_json(silent=True) or {})
    pair = get_services().auth.register(RegisterIn(**payload))
    return json_response({"data": token_schema.dump(pair)}, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    payload = login_schema.load(request.get_json(silent=True) or {})
    pair = get_services().auth.login(LoginIn(**payload))
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/token")
@timing
def rotate():
    """Exchange an access/refresh pair for a new one (single use)."""

    payload = rotate_schema.load(request.get_json(silent=True) or {})
    outcome = get_services().rotation.rotate(payload["access_token"], payload["refresh_token"])
    if not isinstance(outcome, Rotated):
        raise Unauthorized()
    pair = TokenPairOut.from_record(outcome.pair)
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/logout")
@with_auth_context
@timing
def logout(ctx: AuthContext):
    """Revoke the pair used to authenticate this request."""

    get_services().auth.logout(ctx)
    return Response(status=204)


@bp.get("/me")
@with_auth_context
@timing
def me(ctx: AuthContext):
    """Return the authenticated subject."""

    who = get_services().auth.whoami(ctx)
    return json_response({"data": whoami_schema.dump(who)})
