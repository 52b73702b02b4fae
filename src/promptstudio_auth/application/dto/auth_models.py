"""Pydantic models for the auth HTTP request and response contracts."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from promptstudio_auth.application.ports.refresh_session_repository_port import (
    RefreshSessionRecord,
)
from promptstudio_auth.application.ports.user_repository_port import UserRecord
from promptstudio_auth.domain.auth.roles import Role


class RequestModel(BaseModel):
    """Lenient request base; presence checks happen in the auth service."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ResponseModel(BaseModel):
    """Strict camelCase response base."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class RegisterRequest(RequestModel):
    """HTTP request model for account registration."""

    name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(RequestModel):
    """HTTP request model for credential login."""

    email: str | None = None
    password: str | None = None


class LogoutRequest(RequestModel):
    """Optional logout body for clients whose refresh cookie is not sent to /logout."""

    refresh_token: str | None = None


class UserProfile(ResponseModel):
    """Sanitized user profile; never carries the password hash or sessions."""

    id: UUID
    name: str
    email: str
    role: Role

    @classmethod
    def from_record(cls, user: UserRecord) -> UserProfile:
        return cls(id=user.user_id, name=user.name, email=user.email, role=user.role)


class AuthResponse(ResponseModel):
    """HTTP response model for register and login."""

    access_token: str
    user: UserProfile


class AccessTokenResponse(ResponseModel):
    """HTTP response model for refresh."""

    access_token: str


class EmptyResponse(ResponseModel):
    """Empty JSON object returned by logout endpoints."""


class SessionSummary(ResponseModel):
    """One active session as shown to its owner."""

    id: int
    user_agent: str | None
    ip_address: str | None
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_record(cls, record: RefreshSessionRecord) -> SessionSummary:
        return cls(
            id=record.id,
            user_agent=record.user_agent,
            ip_address=record.ip_address,
            created_at=record.created_at,
            expires_at=record.expires_at,
        )


class SessionListResponse(ResponseModel):
    """HTTP response model for the caller's session listing."""

    sessions: list[SessionSummary]
