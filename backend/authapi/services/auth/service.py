from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from authapi.models.user import DEFAULT_ROLE
from authapi.repositories.user import UserRepository
from authapi.services._shared.base import BaseService
from authapi.services._shared.errors import ConflictError, InvalidCredentialsError
from authapi.services._shared.ports.subject_directory import SubjectView
from authapi.services._shared.ports.token_store import RevokeResult, TokenStore
from authapi.services.auth.dto import LoginIn, RegisterIn, TokenPairOut, WhoAmIOut
from authapi.services.tokens.issuance import TokenIssuanceService
from authapi.services.tokens.outcomes import AuthContext

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Credential-facing entry points around the token lifecycle.

    Registration and login establish a subject's identity and then hand off to
    :class:`TokenIssuanceService`; logout revokes the pair the request gate
    resolved for the caller.
    """

    def __init__(self, *, issuance: TokenIssuanceService, store: TokenStore) -> None:
        """
        :param issuance: Mints and persists token pairs.
        :param store: Token store, used to revoke on logout.
        """
        super().__init__()
        self.issuance = issuance
        self.store = store

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> TokenPairOut:
        """
        Create an enabled user and issue its first token pair.

        :raises ConflictError: If the username or email is already taken.
        """
        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                if repo.exists_by_username(dto.username):
                    raise ConflictError("User", "username already in use")
                if repo.exists_by_email(dto.email):
                    raise ConflictError("User", "email already in use")

                user = repo.model(username=dto.username, email=dto.email, roles=[DEFAULT_ROLE])
                user.password = dto.password  # setter hashes
                repo.add(user)
                subject = self._to_subject(user)
        except IntegrityError as exc:
            # Lost a race against a concurrent registration
            raise ConflictError("User", "username or email already in use") from exc

        log.info("auth.register.ok", extra={"subject_id": subject.id})
        return TokenPairOut.from_record(self.issuance.issue_pair(subject))

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> TokenPairOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :raises InvalidCredentialsError: Unknown user, wrong password or
            disabled account (indistinguishable to the caller).
        """
        with self.rw_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get_by_username_or_email(dto.username_or_email)
            if user is None or not user.verify_password(dto.password) or not user.enabled:
                log.info("auth.login.denied")
                raise InvalidCredentialsError()
            subject = self._to_subject(user)

        return TokenPairOut.from_record(self.issuance.issue_pair(subject))

    # ------------------------------------------------------------------ #
    # Logout / whoami
    # ------------------------------------------------------------------ #

    def logout(self, ctx: AuthContext) -> RevokeResult:
        """Blacklist the pair that authenticated this request."""
        with self.store.atomic():
            result = self.store.try_revoke(ctx.pair_id)
        log.info(
            "auth.logout",
            extra={"subject_id": ctx.subject_id, "pair_id": ctx.pair_id, "reason": result.name},
        )
        return result

    def whoami(self, ctx: AuthContext) -> WhoAmIOut:
        return WhoAmIOut(subject_id=ctx.subject_id, roles=ctx.roles)

    @staticmethod
    def _to_subject(user) -> SubjectView:
        return SubjectView(id=user.id, roles=tuple(user.roles or ()), enabled=bool(user.enabled))
