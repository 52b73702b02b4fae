"""SQLAlchemy adapter for user persistence."""

from __future__ import annotations

from datetime import datetime
from typing import cast
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promptstudio_auth.application.errors import ConflictError, StoreUnavailableError
from promptstudio_auth.application.ports.user_repository_port import (
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from promptstudio_auth.domain.auth.roles import Role
from promptstudio_auth.infrastructure.db.metadata import users
from promptstudio_auth.infrastructure.db.timestamps import as_utc

_USER_COLUMNS = (
    users.c.id,
    users.c.name,
    users.c.email,
    users.c.password_hash,
    users.c.role,
    users.c.created_at,
    users.c.updated_at,
)


class SqlAlchemyUserRepository(UserRepositoryPort):
    """User repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id or None."""

        statement = sa.select(*_USER_COLUMNS).where(users.c.id == user_id).limit(1)
        return await self._fetch_one(statement)

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email or None."""

        statement = sa.select(*_USER_COLUMNS).where(users.c.email == email).limit(1)
        return await self._fetch_one(statement)

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one user row; a duplicate email maps to ConflictError."""

        statement = (
            sa.insert(users)
            .values(
                id=uuid4(),
                name=payload.name,
                email=payload.email,
                password_hash=payload.password_hash,
                role=payload.role.value,
            )
            .returning(*_USER_COLUMNS)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                row = result.mappings().one()
                await session.commit()
        except IntegrityError as exc:
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("user store unavailable") from exc

        return _to_user_record(row)

    async def set_role(self, *, user_id: UUID, role: Role) -> UserRecord | None:
        """Update one user's role and return the updated row or None."""

        statement = (
            sa.update(users)
            .where(users.c.id == user_id)
            .values(role=role.value, updated_at=sa.func.current_timestamp())
            .returning(*_USER_COLUMNS)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                row = result.mappings().first()
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("user store unavailable") from exc

        if row is None:
            return None
        return _to_user_record(row)

    async def _fetch_one(self, statement: sa.Select[tuple[object, ...]]) -> UserRecord | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                row = result.mappings().first()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("user store unavailable") from exc

        if row is None:
            return None
        return _to_user_record(row)


def _to_user_record(row: sa.RowMapping) -> UserRecord:
    raw_user_id = row["id"]
    user_id = raw_user_id if isinstance(raw_user_id, UUID) else UUID(str(raw_user_id))
    return UserRecord(
        user_id=user_id,
        name=cast(str, row["name"]),
        email=cast(str, row["email"]),
        password_hash=cast(str, row["password_hash"]),
        role=Role(cast(str, row["role"])),
        created_at=as_utc(cast(datetime, row["created_at"])),
        updated_at=as_utc(cast(datetime, row["updated_at"])),
    )
