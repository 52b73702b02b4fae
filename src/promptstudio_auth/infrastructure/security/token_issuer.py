"""Access-token signing and opaque refresh-token generation."""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt

from promptstudio_auth.application.errors import (
    SigningError,
    TokenExpiredError,
    UnauthenticatedError,
)
from promptstudio_auth.application.ports.token_issuer_port import (
    AccessTokenIdentity,
    IssuedRefreshToken,
    TokenIssuerPort,
)

_DEFAULT_ACCESS_TOKEN_TTL = timedelta(minutes=15)
_DEFAULT_REFRESH_TOKEN_TTL = timedelta(days=7)
_REFRESH_SECRET_BYTES = 40
_ACCESS_TOKEN_TYPE = "access"


def _default_secret_factory() -> str:
    return secrets.token_hex(_REFRESH_SECRET_BYTES)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class TokenIssuer(TokenIssuerPort):
    """Mint and verify access tokens and mint hashed refresh tokens."""

    def __init__(
        self,
        *,
        secret: str,
        algorithm: str = "HS256",
        access_token_ttl: timedelta = _DEFAULT_ACCESS_TOKEN_TTL,
        refresh_token_ttl: timedelta = _DEFAULT_REFRESH_TOKEN_TTL,
        secret_factory: Callable[[], str] = _default_secret_factory,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._access_token_ttl = access_token_ttl
        self._refresh_token_ttl = refresh_token_ttl
        self._secret_factory = secret_factory
        self._now = now

    @property
    def access_token_ttl(self) -> timedelta:
        return self._access_token_ttl

    @property
    def refresh_token_ttl(self) -> timedelta:
        return self._refresh_token_ttl

    def now(self) -> datetime:
        """Return the issuer clock's current UTC time."""

        return self._now()

    def issue_access_token(self, user_id: UUID) -> str:
        """Sign a short-lived access token for one user."""

        if not self._secret:
            raise SigningError("access token signing secret is not configured")

        issued_at = self._now()
        payload = {
            "sub": str(user_id),
            "type": _ACCESS_TOKEN_TYPE,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._access_token_ttl).timestamp()),
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except jwt.PyJWTError as exc:
            raise SigningError("failed to sign access token") from exc

    def issue_refresh_token(self) -> IssuedRefreshToken:
        """Generate a random refresh secret, its storage hash, and absolute expiry."""

        secret = self._secret_factory()
        return IssuedRefreshToken(
            secret=secret,
            token_hash=self.hash_refresh_token(secret),
            expires_at=self._now() + self._refresh_token_ttl,
        )

    def hash_refresh_token(self, raw_token: str) -> str:
        """Return the one-way SHA-256 hex digest stored for a refresh secret."""

        return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()

    def decode_access_token(self, token: str) -> AccessTokenIdentity:
        """Verify signature and expiry, raising TokenExpiredError or UnauthenticatedError."""

        if not self._secret:
            raise UnauthenticatedError("not authorized, invalid token")

        try:
            # Time claims are checked below against the injected clock.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["exp", "sub"],
                },
            )
        except jwt.PyJWTError as exc:
            raise UnauthenticatedError("not authorized, invalid token") from exc

        if payload.get("type") != _ACCESS_TOKEN_TYPE:
            raise UnauthenticatedError("not authorized, invalid token")

        try:
            user_id = UUID(str(payload["sub"]))
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
        except (TypeError, ValueError) as exc:
            raise UnauthenticatedError("not authorized, invalid token") from exc

        if expires_at <= self._now():
            raise TokenExpiredError()

        return AccessTokenIdentity(user_id=user_id, expires_at=expires_at)

    def verify_access_token(self, token: str) -> AccessTokenIdentity | None:
        """Return the token identity, or None on any verification failure."""

        try:
            return self.decode_access_token(token)
        except UnauthenticatedError:
            return None
