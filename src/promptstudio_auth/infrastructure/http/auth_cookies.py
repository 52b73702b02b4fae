"""Cookie transport for access and refresh tokens."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Literal

from starlette.responses import Response

ACCESS_TOKEN_COOKIE_NAME = "access_token"
REFRESH_TOKEN_COOKIE_NAME = "refresh_token"
DEFAULT_REFRESH_COOKIE_PATH = "/api/auth/refresh"


@dataclass(frozen=True)
class AuthCookiePolicy:
    """Attributes shared by setting and clearing the auth cookies."""

    secure: bool
    access_token_ttl: timedelta
    refresh_token_ttl: timedelta
    refresh_cookie_path: str = DEFAULT_REFRESH_COOKIE_PATH
    samesite: Literal["lax", "strict", "none"] = "strict"

    def set_auth_cookies(
        self,
        response: Response,
        *,
        access_token: str,
        refresh_token: str,
    ) -> None:
        """Attach both HttpOnly token cookies to a response."""

        response.set_cookie(
            ACCESS_TOKEN_COOKIE_NAME,
            access_token,
            max_age=int(self.access_token_ttl.total_seconds()),
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )
        response.set_cookie(
            REFRESH_TOKEN_COOKIE_NAME,
            refresh_token,
            max_age=int(self.refresh_token_ttl.total_seconds()),
            path=self.refresh_cookie_path,
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )

    def clear_auth_cookies(self, response: Response) -> None:
        """Expire both token cookies using the attributes they were set with."""

        response.delete_cookie(
            ACCESS_TOKEN_COOKIE_NAME,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )
        response.delete_cookie(
            REFRESH_TOKEN_COOKIE_NAME,
            path=self.refresh_cookie_path,
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )
