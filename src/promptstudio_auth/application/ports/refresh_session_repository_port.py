"""Port for per-user refresh session persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class RefreshSessionCreateInput:
    """Input payload for inserting one refresh session record."""

    user_id: UUID
    token_hash: str
    expires_at: datetime
    user_agent: str | None
    ip_address: str | None


@dataclass(frozen=True)
class RefreshSessionRecord:
    """Persisted refresh session model. Only the token hash is stored."""

    id: int
    user_id: UUID
    token_hash: str
    expires_at: datetime
    user_agent: str | None
    ip_address: str | None
    created_at: datetime


class RefreshSessionRepositoryPort(Protocol):
    """Bounded per-user refresh session store contract.

    All operations raise StoreUnavailableError when the backing store fails.
    """

    async def add_session(
        self,
        payload: RefreshSessionCreateInput,
        *,
        max_sessions: int,
    ) -> RefreshSessionRecord:
        """Insert a session and evict the owner's oldest ones beyond `max_sessions`."""

    async def consume_active_session(
        self,
        *,
        token_hash: str,
        now: datetime,
    ) -> RefreshSessionRecord | None:
        """Atomically delete and return the unexpired session with this hash."""

    async def remove_session(self, *, token_hash: str) -> int:
        """Delete every session with this hash and return the affected count."""

    async def prune_expired(self, *, user_id: UUID, now: datetime) -> int:
        """Delete the user's sessions expiring at or before `now`."""

    async def clear_all_sessions(self, *, user_id: UUID) -> int:
        """Delete all sessions of one user."""

    async def list_sessions(self, *, user_id: UUID) -> list[RefreshSessionRecord]:
        """Return the user's sessions in insertion order."""
