"""SQLAlchemy adapter for bounded per-user refresh sessions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promptstudio_auth.application.errors import StoreUnavailableError
from promptstudio_auth.application.ports.refresh_session_repository_port import (
    RefreshSessionCreateInput,
    RefreshSessionRecord,
    RefreshSessionRepositoryPort,
)
from promptstudio_auth.infrastructure.db.metadata import refresh_sessions, users
from promptstudio_auth.infrastructure.db.timestamps import as_utc

_STORE_UNAVAILABLE = "session store unavailable"


class SqlAlchemyRefreshSessionRepository(RefreshSessionRepositoryPort):
    """Refresh session repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_session(
        self,
        payload: RefreshSessionCreateInput,
        *,
        max_sessions: int,
    ) -> RefreshSessionRecord:
        """Insert one session and evict the owner's oldest sessions beyond capacity.

        The owner's `users` row is locked for the whole transaction, so
        inserts for one user run one at a time.
        """

        insert_statement = sa.insert(refresh_sessions).values(
            user_id=payload.user_id,
            token_hash=payload.token_hash,
            expires_at=payload.expires_at,
            user_agent=payload.user_agent,
            ip_address=payload.ip_address,
        ).returning(*refresh_sessions.c)
        overflow_statement = (
            sa.select(refresh_sessions.c.id)
            .where(refresh_sessions.c.user_id == payload.user_id)
            .order_by(refresh_sessions.c.id.desc())
            .offset(max_sessions)
        )

        try:
            async with self._session_factory() as session:
                await session.execute(_owner_lock_statement(payload.user_id))
                result = await session.execute(insert_statement)
                row = result.mappings().one()
                overflow_ids = list((await session.execute(overflow_statement)).scalars())
                if overflow_ids:
                    await session.execute(
                        sa.delete(refresh_sessions).where(
                            refresh_sessions.c.id.in_(overflow_ids)
                        )
                    )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(_STORE_UNAVAILABLE) from exc

        return _to_refresh_session_record(row)

    async def consume_active_session(
        self,
        *,
        token_hash: str,
        now: datetime,
    ) -> RefreshSessionRecord | None:
        """Delete and return the unexpired session for this hash in one statement."""

        statement = (
            sa.delete(refresh_sessions)
            .where(
                refresh_sessions.c.token_hash == token_hash,
                refresh_sessions.c.expires_at > now,
            )
            .returning(*refresh_sessions.c)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                row = result.mappings().first()
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(_STORE_UNAVAILABLE) from exc

        if row is None:
            return None
        return _to_refresh_session_record(row)

    async def remove_session(self, *, token_hash: str) -> int:
        """Delete every session stored under this hash."""

        statement = sa.delete(refresh_sessions).where(
            refresh_sessions.c.token_hash == token_hash
        )
        return await self._execute_delete(statement)

    async def prune_expired(self, *, user_id: UUID, now: datetime) -> int:
        """Delete one user's sessions whose expiry is at or before `now`."""

        statement = sa.delete(refresh_sessions).where(
            refresh_sessions.c.user_id == user_id,
            refresh_sessions.c.expires_at <= now,
        )
        return await self._execute_delete(statement)

    async def clear_all_sessions(self, *, user_id: UUID) -> int:
        """Delete every session of one user."""

        statement = sa.delete(refresh_sessions).where(refresh_sessions.c.user_id == user_id)
        return await self._execute_delete(statement)

    async def list_sessions(self, *, user_id: UUID) -> list[RefreshSessionRecord]:
        """Return one user's sessions ordered oldest first."""

        statement = (
            sa.select(*refresh_sessions.c)
            .where(refresh_sessions.c.user_id == user_id)
            .order_by(refresh_sessions.c.id.asc())
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                rows = result.mappings().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(_STORE_UNAVAILABLE) from exc

        return [_to_refresh_session_record(row) for row in rows]

    async def _execute_delete(self, statement: sa.Delete) -> int:
        try:
            async with self._session_factory() as session:
                result = cast(CursorResult[Any], await session.execute(statement))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(_STORE_UNAVAILABLE) from exc

        return int(result.rowcount or 0)


def _owner_lock_statement(user_id: UUID) -> sa.Select[tuple[UUID]]:
    return sa.select(users.c.id).where(users.c.id == user_id).with_for_update()


def _to_refresh_session_record(row: sa.RowMapping) -> RefreshSessionRecord:
    raw_user_id = row["user_id"]
    user_id = raw_user_id if isinstance(raw_user_id, UUID) else UUID(str(raw_user_id))
    return RefreshSessionRecord(
        id=int(row["id"]),
        user_id=user_id,
        token_hash=cast(str, row["token_hash"]),
        expires_at=as_utc(cast(datetime, row["expires_at"])),
        user_agent=cast(str | None, row["user_agent"]),
        ip_address=cast(str | None, row["ip_address"]),
        created_at=as_utc(cast(datetime, row["created_at"])),
    )
