"""Shared normalization helpers for user credential inputs."""

from __future__ import annotations

import re

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
# bcrypt only reads the first 72 bytes of a secret.
PASSWORD_MAX_BYTES = 72

_EMAIL_PATTERN = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.\w{2,}$")


def normalize_user_email(*, email: str) -> str:
    """Normalize one user email and reject blank or malformed values."""

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email cannot be blank")
    if _EMAIL_PATTERN.match(normalized) is None:
        raise ValueError("please provide a valid email")
    return normalized


def normalize_user_password(*, password: str) -> str:
    """Reject blank or too-short plaintext passwords.

    Surrounding whitespace is kept as part of the secret.
    """

    if not password.strip():
        raise ValueError("password cannot be blank")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password cannot exceed {PASSWORD_MAX_BYTES} bytes")
    return password


def normalize_user_name(*, name: str) -> str:
    """Trim one display name and enforce its length bounds."""

    normalized = name.strip()
    if not normalized:
        raise ValueError("name cannot be blank")
    if len(normalized) < NAME_MIN_LENGTH:
        raise ValueError(f"name must be at least {NAME_MIN_LENGTH} characters")
    if len(normalized) > NAME_MAX_LENGTH:
        raise ValueError(f"name cannot exceed {NAME_MAX_LENGTH} characters")
    return normalized
