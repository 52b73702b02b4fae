from __future__ import annotations

from datetime import timedelta

from starlette.responses import Response

from promptstudio_auth.infrastructure.http.auth_cookies import AuthCookiePolicy


def _policy(*, secure: bool) -> AuthCookiePolicy:
    return AuthCookiePolicy(
        secure=secure,
        access_token_ttl=timedelta(minutes=15),
        refresh_token_ttl=timedelta(days=7),
    )


def _set_cookie_headers(response: Response) -> dict[str, str]:
    headers: dict[str, str] = {}
    for key, value in response.raw_headers:
        if key.decode("latin-1") == "set-cookie":
            decoded = value.decode("latin-1")
            headers[decoded.split("=", 1)[0]] = decoded
    return headers


def test_set_auth_cookies_uses_httponly_strict_cookies_with_ttl_max_age() -> None:
    response = Response()

    _policy(secure=False).set_auth_cookies(response, access_token="acc", refresh_token="ref")

    cookies = _set_cookie_headers(response)
    access = cookies["access_token"]
    refresh = cookies["refresh_token"]
    assert access.startswith("access_token=acc;")
    assert "HttpOnly" in access
    assert "Max-Age=900" in access
    assert "Path=/;" in access or access.endswith("Path=/")
    assert "SameSite=strict" in access
    assert "Secure" not in access
    assert refresh.startswith("refresh_token=ref;")
    assert "Max-Age=604800" in refresh
    assert "Path=/api/auth/refresh" in refresh
    assert "HttpOnly" in refresh


def test_secure_policy_marks_both_cookies_secure() -> None:
    response = Response()

    _policy(secure=True).set_auth_cookies(response, access_token="acc", refresh_token="ref")

    cookies = _set_cookie_headers(response)
    assert "Secure" in cookies["access_token"]
    assert "Secure" in cookies["refresh_token"]


def test_clear_auth_cookies_expires_both_on_their_paths() -> None:
    response = Response()

    _policy(secure=False).clear_auth_cookies(response)

    cookies = _set_cookie_headers(response)
    assert "Max-Age=0" in cookies["access_token"]
    assert "Max-Age=0" in cookies["refresh_token"]
    assert "Path=/api/auth/refresh" in cookies["refresh_token"]
