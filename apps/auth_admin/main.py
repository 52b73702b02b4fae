"""auth-admin entrypoint: promote an already registered account to admin.

Usage:
    promptstudio-auth-promote --email owner@example.org
    DATABASE_URL=postgresql+asyncpg://... promptstudio-auth-promote --email owner@example.org

The account must exist first (register it through POST /api/auth/register).
`DATABASE_URL` is read from the environment or a local `.env` file when
`--database-url` is not given.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from promptstudio_auth.application.errors import StoreUnavailableError
from promptstudio_auth.application.services.role_assignment_service import (
    PromotionOutcome,
    PromotionResult,
    RoleAssignmentService,
    UserEmailNotFoundError,
)
from promptstudio_auth.infrastructure.db.user_repository import SqlAlchemyUserRepository
from promptstudio_auth.infrastructure.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser for the promote command."""

    parser = argparse.ArgumentParser(
        prog="promptstudio-auth-promote",
        description="Grant the admin role to an existing PromptStudio account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--email", required=True, help="Email of the registered account")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Async SQLAlchemy URL (or set DATABASE_URL)",
    )
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "WARNING"))
    return parser


async def promote_user(*, database_url: str, email: str) -> PromotionResult:
    """Open the user store, promote one account, and release the engine."""

    engine = create_async_engine(database_url)
    try:
        service = RoleAssignmentService(
            users=SqlAlchemyUserRepository(async_sessionmaker(engine, expire_on_commit=False))
        )
        return await service.promote_to_admin(email=email)
    finally:
        await engine.dispose()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the promote command and return its process exit code."""

    load_dotenv(Path(".env"))
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level)

    database_url = args.database_url or os.environ.get("DATABASE_URL")
    if not database_url:
        parser.error("--database-url or DATABASE_URL is required")

    try:
        result = asyncio.run(promote_user(database_url=database_url, email=args.email))
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except UserEmailNotFoundError as exc:
        print(f"error: {exc}; register the account first", file=sys.stderr)
        return 1
    except StoreUnavailableError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if result.outcome is PromotionOutcome.ALREADY_ADMIN:
        print(f"{result.email} is already an admin (id: {result.user_id})")
    else:
        print(f"promoted {result.email} to admin (id: {result.user_id})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
