from __future__ import annotations

from dataclasses import dataclass

from authapi.services._shared.ports.token_store import TokenPairRecord

TOKEN_TYPE = "Bearer"

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param username: Unique login handle.
    :type username: str
    :param email: User email (normalized by the model).
    :type email: str
    :param password: Raw password (hashed by the model).
    :type password: str
    """

    username: str
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username_or_email: Username or email.
    :type username_or_email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    username_or_email: str
    password: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access token.
    :param refresh_token: Encoded refresh token.
    :param token_type: Always ``"Bearer"``.
    """

    access_token: str
    refresh_token: str
    token_type: str = TOKEN_TYPE

    @classmethod
    def from_record(cls, record: TokenPairRecord) -> TokenPairOut:
        return cls(access_token=record.access_token, refresh_token=record.refresh_token)


@dataclass(frozen=True, slots=True)
class WhoAmIOut:
    """The authenticated caller as seen by the request gate."""

    subject_id: str
    roles: tuple[str, ...]
