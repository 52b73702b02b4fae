"""Access-token extraction, verification, and role-gating helpers."""

from __future__ import annotations

import logging

from promptstudio_auth.application.errors import (
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
)
from promptstudio_auth.application.ports.token_issuer_port import (
    AccessTokenIdentity,
    TokenIssuerPort,
)
from promptstudio_auth.application.ports.user_repository_port import (
    UserRecord,
    UserRepositoryPort,
)
from promptstudio_auth.domain.auth.roles import Role

ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})
ANY_ROLE: frozenset[Role] = frozenset(Role)
logger = logging.getLogger(__name__)


def extract_bearer_token(authorization_header: str | None) -> str | None:
    """Return the token from `Authorization: Bearer <token>`, or None when absent/malformed."""

    if authorization_header is None or not authorization_header.strip():
        return None

    parts = authorization_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None

    return parts[1]


def resolve_access_token(
    *,
    authorization_header: str | None,
    access_cookie: str | None,
) -> str | None:
    """Prefer the bearer header and fall back to the access-token cookie."""

    header_token = extract_bearer_token(authorization_header)
    if header_token is not None:
        return header_token
    if access_cookie:
        return access_cookie
    return None


class RequestAuthenticator:
    """Resolve the caller identity from a stateless access token."""

    def __init__(self, *, token_issuer: TokenIssuerPort) -> None:
        self._token_issuer = token_issuer

    def authenticate(
        self,
        *,
        authorization_header: str | None,
        access_cookie: str | None,
    ) -> AccessTokenIdentity:
        """Return the verified identity or raise TokenExpiredError/UnauthenticatedError."""

        token = resolve_access_token(
            authorization_header=authorization_header,
            access_cookie=access_cookie,
        )
        if token is None:
            raise UnauthenticatedError("not authorized, no token")

        try:
            return self._token_issuer.decode_access_token(token)
        except UnauthenticatedError as exc:
            logger.debug("auth_access_token_rejected kind=%s", type(exc).__name__)
            raise


class RoleAuthorizer:
    """Gate access by the persisted role of an authenticated caller."""

    def __init__(self, *, users: UserRepositoryPort) -> None:
        self._users = users

    async def require_role(
        self,
        *,
        identity: AccessTokenIdentity,
        allowed_roles: frozenset[Role],
    ) -> UserRecord:
        """Return the caller record when its role is allowed."""

        user = await self._users.get_by_id(user_id=identity.user_id)
        if user is None:
            raise NotFoundError()
        if user.role not in allowed_roles:
            logger.info(
                "auth_role_forbidden user_id=%s role=%s",
                user.user_id,
                user.role.value,
            )
            raise ForbiddenError()
        return user
