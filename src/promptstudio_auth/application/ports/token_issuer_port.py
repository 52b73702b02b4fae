"""Port for access-token signing and refresh-token minting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class AccessTokenIdentity:
    """Identity decoded from a verified access token."""

    user_id: UUID
    expires_at: datetime


@dataclass(frozen=True)
class IssuedRefreshToken:
    """Freshly minted refresh token.

    `secret` goes to the client only; `token_hash` is what gets persisted.
    """

    secret: str
    token_hash: str
    expires_at: datetime


class TokenIssuerPort(Protocol):
    """Token minting/verification contract."""

    def now(self) -> datetime:
        """Return the issuer clock's current UTC time."""

    def issue_access_token(self, user_id: UUID) -> str:
        """Sign a short-lived access token for one user."""

    def issue_refresh_token(self) -> IssuedRefreshToken:
        """Mint a random refresh secret with its storage hash and expiry."""

    def hash_refresh_token(self, raw_token: str) -> str:
        """Return the one-way digest stored for a refresh secret."""

    def decode_access_token(self, token: str) -> AccessTokenIdentity:
        """Verify an access token or raise TokenExpiredError/UnauthenticatedError."""

    def verify_access_token(self, token: str) -> AccessTokenIdentity | None:
        """Verify an access token, returning None on any failure."""
