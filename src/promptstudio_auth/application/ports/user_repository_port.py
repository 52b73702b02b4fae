"""Port for user persistence operations used by authentication services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from promptstudio_auth.domain.auth.roles import Role


@dataclass(frozen=True)
class UserCreateInput:
    """Input payload for creating one user account."""

    name: str
    email: str
    password_hash: str
    role: Role = Role.USER


@dataclass(frozen=True)
class UserRecord:
    """User persistence model."""

    user_id: UUID
    name: str
    email: str
    password_hash: str
    role: Role
    created_at: datetime
    updated_at: datetime


class UserRepositoryPort(Protocol):
    """User repository contract."""

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id or None."""

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email or None."""

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Persist one user; raise ConflictError when the email is taken."""

    async def set_role(self, *, user_id: UUID, role: Role) -> UserRecord | None:
        """Change one user's role and return the updated row, or None when absent."""
