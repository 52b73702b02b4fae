"""Error taxonomy shared by the auth flow, guards, and persistence adapters."""

from __future__ import annotations


class AuthValidationError(ValueError):
    """Raised when request input is missing or malformed."""


class ConflictError(ValueError):
    """Raised when an account with the requested email already exists."""

    def __init__(self, message: str = "user already exists with this email") -> None:
        super().__init__(message)


class InvalidCredentialsError(PermissionError):
    """Raised on login failure without revealing which credential was wrong."""

    def __init__(self) -> None:
        super().__init__("invalid credentials")


class UnauthenticatedError(PermissionError):
    """Raised when a token is missing, invalid, expired, or already consumed."""


class TokenExpiredError(UnauthenticatedError):
    """Raised when an access token is well-formed but past its expiry."""

    def __init__(self, message: str = "token expired") -> None:
        super().__init__(message)


class ForbiddenError(PermissionError):
    """Raised when an authenticated user lacks the role a resource requires."""

    def __init__(self, message: str = "not authorized to access this resource") -> None:
        super().__init__(message)


class NotFoundError(LookupError):
    """Raised when a verified identity no longer resolves to a stored user."""

    def __init__(self, message: str = "user not found") -> None:
        super().__init__(message)


class StoreUnavailableError(RuntimeError):
    """Raised when the persistence layer fails; never retried inline."""


class SigningError(RuntimeError):
    """Raised when access tokens cannot be signed."""
