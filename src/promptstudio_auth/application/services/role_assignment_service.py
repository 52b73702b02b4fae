"""Application service for operator-driven role assignment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from promptstudio_auth.application.ports.user_repository_port import UserRepositoryPort
from promptstudio_auth.domain.auth.credentials import normalize_user_email
from promptstudio_auth.domain.auth.roles import Role

logger = logging.getLogger(__name__)


class UserEmailNotFoundError(LookupError):
    """Raised when no account is registered under the requested email."""

    def __init__(self, *, email: str) -> None:
        super().__init__(f"user not found: {email}")
        self.email = email


class PromotionOutcome(StrEnum):
    """Outcome states for one promote-to-admin request."""

    PROMOTED = "promoted"
    ALREADY_ADMIN = "already_admin"


@dataclass(frozen=True)
class PromotionResult:
    """Result of promoting one existing account."""

    outcome: PromotionOutcome
    user_id: UUID
    email: str


class RoleAssignmentService:
    """Grant the admin role to accounts that registered through the API."""

    def __init__(self, *, users: UserRepositoryPort) -> None:
        self._users = users

    async def promote_to_admin(self, *, email: str) -> PromotionResult:
        """Promote the account behind `email`; admins are left unchanged."""

        normalized_email = normalize_user_email(email=email)
        user = await self._users.get_by_email(email=normalized_email)
        if user is None:
            raise UserEmailNotFoundError(email=normalized_email)

        if user.role is Role.ADMIN:
            return PromotionResult(
                outcome=PromotionOutcome.ALREADY_ADMIN,
                user_id=user.user_id,
                email=user.email,
            )

        updated = await self._users.set_role(user_id=user.user_id, role=Role.ADMIN)
        if updated is None:
            # Deleted between lookup and update.
            raise UserEmailNotFoundError(email=normalized_email)

        logger.info("role_assigned user_id=%s role=%s", updated.user_id, updated.role)
        return PromotionResult(
            outcome=PromotionOutcome.PROMOTED,
            user_id=updated.user_id,
            email=updated.email,
        )
