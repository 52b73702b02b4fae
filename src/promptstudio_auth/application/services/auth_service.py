"""Application authentication service for the access/refresh token protocol."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from promptstudio_auth.application.errors import (
    AuthValidationError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    StoreUnavailableError,
    UnauthenticatedError,
)
from promptstudio_auth.application.ports.password_hasher_port import PasswordHasherPort
from promptstudio_auth.application.ports.refresh_session_repository_port import (
    RefreshSessionCreateInput,
    RefreshSessionRecord,
    RefreshSessionRepositoryPort,
)
from promptstudio_auth.application.ports.token_issuer_port import TokenIssuerPort
from promptstudio_auth.application.ports.user_repository_port import (
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from promptstudio_auth.domain.auth.credentials import (
    normalize_user_email,
    normalize_user_name,
    normalize_user_password,
)
from promptstudio_auth.domain.auth.roles import Role

DEFAULT_MAX_SESSIONS_PER_USER = 5
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientContext:
    """Issuing client metadata recorded on each refresh session."""

    user_agent: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True)
class IssuedTokens:
    """Access token plus the raw refresh secret to hand to the client."""

    user_id: UUID
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True)
class AuthResult:
    """Result of a successful register or login."""

    user: UserRecord
    tokens: IssuedTokens


class AuthService:
    """Register, log in, rotate, and revoke token-backed user sessions."""

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        sessions: RefreshSessionRepositoryPort,
        password_hasher: PasswordHasherPort,
        token_issuer: TokenIssuerPort,
        max_sessions: int = DEFAULT_MAX_SESSIONS_PER_USER,
    ) -> None:
        self._users = users
        self._sessions = sessions
        self._password_hasher = password_hasher
        self._token_issuer = token_issuer
        self._max_sessions = max_sessions

    async def register(
        self,
        *,
        name: str | None,
        email: str | None,
        password: str | None,
        client: ClientContext,
    ) -> AuthResult:
        """Create one `user` account and open its first session."""

        if not name or not email or not password:
            raise AuthValidationError("please provide all required fields")

        try:
            normalized_name = normalize_user_name(name=name)
            normalized_email = normalize_user_email(email=email)
            normalized_password = normalize_user_password(password=password)
        except ValueError as exc:
            raise AuthValidationError(str(exc)) from exc

        if await self._users.get_by_email(email=normalized_email) is not None:
            raise ConflictError()

        user = await self._users.create_user(
            UserCreateInput(
                name=normalized_name,
                email=normalized_email,
                password_hash=self._password_hasher.hash_password(normalized_password),
                role=Role.USER,
            )
        )
        tokens = await self._open_session(user_id=user.user_id, client=client)
        logger.info("auth_register_success user_id=%s", user.user_id)
        return AuthResult(user=user, tokens=tokens)

    async def login(
        self,
        *,
        email: str | None,
        password: str | None,
        client: ClientContext,
    ) -> AuthResult:
        """Verify credentials, prune expired sessions, and open a new session."""

        if not email or not password:
            raise AuthValidationError("please provide email and password")

        user = await self._users.get_by_email(email=email.strip().lower())
        if user is None:
            logger.info("auth_login_failed reason=invalid_credentials")
            raise InvalidCredentialsError()

        is_valid = self._password_hasher.verify_password(
            password=password,
            password_hash=user.password_hash,
        )
        if not is_valid:
            logger.info("auth_login_failed reason=invalid_credentials user_id=%s", user.user_id)
            raise InvalidCredentialsError()

        pruned = await self._sessions.prune_expired(
            user_id=user.user_id,
            now=self._token_issuer.now(),
        )
        tokens = await self._open_session(user_id=user.user_id, client=client)
        logger.info("auth_login_success user_id=%s pruned_sessions=%s", user.user_id, pruned)
        return AuthResult(user=user, tokens=tokens)

    async def refresh(
        self,
        *,
        refresh_token: str | None,
        client: ClientContext,
    ) -> IssuedTokens:
        """Consume one refresh token and issue its replacement pair.

        The consumed record is deleted atomically, so replays and concurrent
        reuse of the same raw token fail closed.
        """

        if not refresh_token:
            raise UnauthenticatedError("no refresh token provided")

        consumed = await self._sessions.consume_active_session(
            token_hash=self._token_issuer.hash_refresh_token(refresh_token),
            now=self._token_issuer.now(),
        )
        if consumed is None:
            logger.info("auth_refresh_rejected reason=unknown_expired_or_reused")
            raise UnauthenticatedError("invalid or expired refresh token")

        tokens = await self._open_session(user_id=consumed.user_id, client=client)
        logger.info("auth_refresh_success user_id=%s", consumed.user_id)
        return tokens

    async def logout(self, *, refresh_token: str | None) -> None:
        """Revoke the session behind one refresh token; unknown tokens are ignored."""

        if not refresh_token:
            return

        try:
            removed = await self._sessions.remove_session(
                token_hash=self._token_issuer.hash_refresh_token(refresh_token)
            )
        except StoreUnavailableError:
            logger.warning("auth_logout_revoke_failed", exc_info=True)
            return
        logger.info("auth_logout removed_sessions=%s", removed)

    async def logout_all(self, *, user_id: UUID) -> None:
        """Revoke every session of one user; a missing user is already logged out."""

        try:
            user = await self._users.get_by_id(user_id=user_id)
            if user is None:
                return
            removed = await self._sessions.clear_all_sessions(user_id=user.user_id)
        except StoreUnavailableError:
            # Sessions may still be live.
            logger.error("auth_logout_all_revoke_failed user_id=%s", user_id, exc_info=True)
            return
        logger.info("auth_logout_all user_id=%s removed_sessions=%s", user.user_id, removed)

    async def get_profile(self, *, user_id: UUID) -> UserRecord:
        """Return the stored user behind a verified identity."""

        user = await self._users.get_by_id(user_id=user_id)
        if user is None:
            raise NotFoundError()
        return user

    async def list_sessions(self, *, user_id: UUID) -> list[RefreshSessionRecord]:
        """Return the caller's unexpired sessions, oldest first."""

        now = self._token_issuer.now()
        return [
            record
            for record in await self._sessions.list_sessions(user_id=user_id)
            if record.expires_at > now
        ]

    async def _open_session(self, *, user_id: UUID, client: ClientContext) -> IssuedTokens:
        access_token = self._token_issuer.issue_access_token(user_id)
        refresh = self._token_issuer.issue_refresh_token()
        await self._sessions.add_session(
            RefreshSessionCreateInput(
                user_id=user_id,
                token_hash=refresh.token_hash,
                expires_at=refresh.expires_at,
                user_agent=client.user_agent,
                ip_address=client.ip_address,
            ),
            max_sessions=self._max_sessions,
        )
        return IssuedTokens(
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh.secret,
            refresh_expires_at=refresh.expires_at,
        )
