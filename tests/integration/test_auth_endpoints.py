from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID, uuid4

import sqlalchemy as sa
from alembic.config import Config
from fastapi.testclient import TestClient
from httpx import Response

from alembic import command
from apps.auth_api.main import create_app
from promptstudio_auth.config.settings import Settings
from promptstudio_auth.infrastructure.db.metadata import refresh_sessions
from promptstudio_auth.infrastructure.security.password_hasher import BcryptPasswordHasher
from promptstudio_auth.infrastructure.security.token_issuer import TokenIssuer

SECRET = "integration-signing-secret-0123456789abcdef"
FIXED_NOW = datetime(2026, 2, 15, 12, 0, 0, tzinfo=UTC)
PASSWORD = "secret1"


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.current = now

    def __call__(self) -> datetime:
        return self.current


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _build_client(async_url: str, *, clock: FakeClock) -> TestClient:
    settings = Settings(
        _env_file=None,
        DATABASE_URL=async_url,
        JWT_SECRET=SECRET,
        APP_ENV="test",
    )
    app = create_app(
        settings=settings,
        token_issuer=TokenIssuer(secret=SECRET, now=clock),
        password_hasher=BcryptPasswordHasher(rounds=4),
    )
    return TestClient(app)


def _insert_user(
    connection: sa.Connection,
    *,
    email: str,
    role: str,
    password: str = PASSWORD,
) -> UUID:
    user_id = uuid4()
    connection.execute(
        sa.text(
            "INSERT INTO users (id, name, email, password_hash, role) "
            "VALUES (:id, :name, :email, :password_hash, :role)"
        ),
        {
            "id": user_id.hex,
            "name": role.title(),
            "email": email,
            "password_hash": BcryptPasswordHasher(rounds=4).hash_password(password),
            "role": role,
        },
    )
    return user_id


def _session_count(sync_url: str) -> int:
    engine = sa.create_engine(sync_url)
    with engine.connect() as connection:
        return int(
            connection.execute(
                sa.select(sa.func.count()).select_from(refresh_sessions)
            ).scalar_one()
        )


def _bearer(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def _refresh_cookie(response: Response) -> str:
    value = response.cookies.get("refresh_token")
    assert value
    return value


def _login(client: TestClient, email: str = "a@x.com") -> Response:
    client.cookies.clear()
    return client.post("/api/auth/login", json={"email": email, "password": PASSWORD})


def _refresh(client: TestClient, refresh_token: str) -> Response:
    client.cookies.clear()
    client.cookies.set("refresh_token", refresh_token)
    response = client.post("/api/auth/refresh")
    client.cookies.clear()
    return response


def _register(client: TestClient) -> Response:
    client.cookies.clear()
    return client.post(
        "/api/auth/register",
        json={"name": "Ada", "email": "a@x.com", "password": PASSWORD},
    )


def test_register_returns_profile_access_token_and_cookies(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "register.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        response = _register(client)

    assert response.status_code == 201
    body = response.json()
    assert set(body) == {"accessToken", "user"}
    assert body["user"]["email"] == "a@x.com"
    assert body["user"]["name"] == "Ada"
    assert body["user"]["role"] == "user"
    assert set(body["user"]) == {"id", "name", "email", "role"}
    set_cookies = response.headers.get_list("set-cookie")
    access_cookie = next(value for value in set_cookies if value.startswith("access_token="))
    refresh_cookie = next(value for value in set_cookies if value.startswith("refresh_token="))
    assert "HttpOnly" in access_cookie
    assert "SameSite=strict" in access_cookie
    assert "Path=/api/auth/refresh" in refresh_cookie
    assert "Secure" not in refresh_cookie
    assert _session_count(sync_url) == 1


def test_register_validation_and_conflict_errors(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "register_errors.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        missing = client.post("/api/auth/register", json={"email": "a@x.com"})
        invalid = client.post(
            "/api/auth/register",
            json={"name": "Ada", "email": "a@x.com", "password": "123"},
        )
        first = _register(client)
        duplicate = client.post(
            "/api/auth/register",
            json={"name": "Other", "email": "A@X.com", "password": PASSWORD},
        )

    assert missing.status_code == 400
    assert missing.json()["detail"] == "please provide all required fields"
    assert invalid.status_code == 400
    assert first.status_code == 201
    assert duplicate.status_code == 409


def test_wrong_typed_auth_input_is_a_validation_error(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "wrong_types.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        register = client.post(
            "/api/auth/register",
            json={"name": 123, "email": "a@x.com", "password": PASSWORD},
        )
        login = client.post("/api/auth/login", json=["a@x.com", PASSWORD])

    assert register.status_code == 400
    assert register.json() == {"detail": "please provide valid fields"}
    assert login.status_code == 400


def test_login_failures_are_indistinguishable(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "login_errors.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        _register(client)
        unknown = client.post(
            "/api/auth/login",
            json={"email": "nobody@x.com", "password": PASSWORD},
        )
        wrong = client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong12"})
        missing = client.post("/api/auth/login", json={"email": "a@x.com"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json() == {"detail": "invalid credentials"}
    assert missing.status_code == 400


def test_session_lifecycle_rotation_eviction_and_logout_all(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "lifecycle.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        assert _register(client).status_code == 201

        logins = [_login(client) for _ in range(6)]
        assert all(response.status_code == 200 for response in logins)
        assert _session_count(sync_url) == 5

        latest = logins[-1]
        access_token = latest.json()["accessToken"]
        me = client.get("/api/auth/me", headers=_bearer(access_token))
        assert me.status_code == 200
        assert me.json()["email"] == "a@x.com"

        listed = client.get("/api/auth/sessions", headers=_bearer(access_token))
        assert listed.status_code == 200
        assert len(listed.json()["sessions"]) == 5

        original_refresh = _refresh_cookie(latest)
        rotated = _refresh(client, original_refresh)
        assert rotated.status_code == 200
        assert set(rotated.json()) == {"accessToken"}
        rotated_refresh = _refresh_cookie(rotated)
        assert rotated_refresh != original_refresh
        assert _session_count(sync_url) == 5

        replay = _refresh(client, original_refresh)
        assert replay.status_code == 401

        logout_all = client.post("/api/auth/logout-all", headers=_bearer(access_token))
        assert logout_all.status_code == 200
        assert logout_all.json() == {}
        assert _session_count(sync_url) == 0

        assert _refresh(client, rotated_refresh).status_code == 401
        assert _refresh(client, _refresh_cookie(logins[0])).status_code == 401


def test_refresh_without_cookie_is_unauthorized(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "refresh_missing.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        client.cookies.clear()
        response = client.post("/api/auth/refresh")

    assert response.status_code == 401
    assert response.json() == {"detail": "no refresh token provided"}


def test_refresh_rejects_backdated_session(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "backdated.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        refresh_token = _refresh_cookie(_register(client))
        engine = sa.create_engine(sync_url)
        with engine.begin() as connection:
            connection.execute(
                sa.update(refresh_sessions).values(expires_at=FIXED_NOW - timedelta(seconds=1))
            )

        response = _refresh(client, refresh_token)

    assert response.status_code == 401
    assert response.json() == {"detail": "invalid or expired refresh token"}


def test_logout_revokes_one_session_and_is_idempotent(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "logout.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        registered = _register(client)
        access_token = registered.json()["accessToken"]
        refresh_token = _refresh_cookie(registered)
        _login(client)
        client.cookies.clear()

        first = client.post(
            "/api/auth/logout",
            json={"refreshToken": refresh_token},
            headers=_bearer(access_token),
        )
        second = client.post(
            "/api/auth/logout",
            json={"refreshToken": refresh_token},
            headers=_bearer(access_token),
        )
        bare = client.post("/api/auth/logout", headers=_bearer(access_token))

        assert _refresh(client, refresh_token).status_code == 401

    assert first.status_code == second.status_code == bare.status_code == 200
    assert first.json() == {}
    cleared = first.headers.get_list("set-cookie")
    assert any(value.startswith("access_token=") and "Max-Age=0" in value for value in cleared)
    assert any(value.startswith("refresh_token=") and "Max-Age=0" in value for value in cleared)
    assert _session_count(sync_url) == 1


def test_protected_routes_require_a_valid_token(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "protected.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        client.cookies.clear()
        missing = client.get("/api/auth/me")
        forged = client.get("/api/auth/me", headers=_bearer("not-a-jwt"))

    assert missing.status_code == 401
    assert missing.json() == {"detail": "not authorized, no token"}
    assert forged.status_code == 401
    assert forged.headers["www-authenticate"] == "Bearer"


def test_logout_requires_access_token_and_keeps_session(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "logout_unauthenticated.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        refresh_token = _refresh_cookie(_register(client))
        client.cookies.clear()

        response = client.post("/api/auth/logout", json={"refreshToken": refresh_token})

    assert response.status_code == 401
    assert response.json() == {"detail": "not authorized, no token"}
    assert _session_count(sync_url) == 1

def test_access_cookie_authenticates_when_header_is_absent(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "cookie_auth.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        access_token = _register(client).json()["accessToken"]
        client.cookies.clear()
        client.cookies.set("access_token", access_token)
        response = client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["email"] == "a@x.com"


def test_expired_access_token_is_reported_distinctly(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "expired_access.db")
    clock = FakeClock(FIXED_NOW)

    with _build_client(async_url, clock=clock) as client:
        registered = _register(client)
        access_token = registered.json()["accessToken"]
        refresh_token = _refresh_cookie(registered)
        clock.current = FIXED_NOW + timedelta(minutes=16)

        expired = client.get("/api/auth/me", headers=_bearer(access_token))
        renewed = _refresh(client, refresh_token)
        fresh = client.get("/api/auth/me", headers=_bearer(renewed.json()["accessToken"]))

    assert expired.status_code == 401
    assert expired.json() == {"detail": "token expired"}
    assert 'error="invalid_token"' in expired.headers["www-authenticate"]
    assert renewed.status_code == 200
    assert fresh.status_code == 200


def test_admin_route_is_role_gated(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "admin_route.db")
    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        admin_id = _insert_user(connection, email="admin@x.com", role="admin")
        member_id = _insert_user(connection, email="member@x.com", role="user")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        admin_token = _login(client, "admin@x.com").json()["accessToken"]
        member_token = _login(client, "member@x.com").json()["accessToken"]
        client.cookies.clear()

        forbidden = client.get(f"/api/auth/users/{admin_id}", headers=_bearer(member_token))
        allowed = client.get(f"/api/auth/users/{member_id}", headers=_bearer(admin_token))
        missing = client.get(f"/api/auth/users/{uuid4()}", headers=_bearer(admin_token))

    assert forbidden.status_code == 403
    assert forbidden.json() == {"detail": "not authorized to access this resource"}
    assert allowed.status_code == 200
    assert allowed.json()["email"] == "member@x.com"
    assert allowed.json()["role"] == "user"
    assert missing.status_code == 404


def test_deleted_user_token_gets_not_found_on_me(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "deleted_user.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        access_token = _register(client).json()["accessToken"]
        engine = sa.create_engine(sync_url)
        with engine.begin() as connection:
            connection.execute(sa.text("DELETE FROM refresh_sessions"))
            connection.execute(sa.text("DELETE FROM users"))
        client.cookies.clear()

        me = client.get("/api/auth/me", headers=_bearer(access_token))
        logout_all = client.post("/api/auth/logout-all", headers=_bearer(access_token))

    assert me.status_code == 404
    assert logout_all.status_code == 200


def test_health_reports_environment(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "health.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "environment": "test"}


def test_store_failure_maps_to_internal_error(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "store_failure.db")

    with _build_client(async_url, clock=FakeClock(FIXED_NOW)) as client:
        access_token = _register(client).json()["accessToken"]
        engine = sa.create_engine(sync_url)
        with engine.begin() as connection:
            connection.execute(sa.text("DROP TABLE refresh_sessions"))
        client.cookies.clear()

        login = client.post("/api/auth/login", json={"email": "a@x.com", "password": PASSWORD})
        logout_all = client.post("/api/auth/logout-all", headers=_bearer(access_token))
        logout = client.post(
            "/api/auth/logout",
            json={"refreshToken": "anything"},
            headers=_bearer(access_token),
        )

    assert login.status_code == 500
    assert login.json() == {"detail": "internal server error"}
    assert logout_all.status_code == 200
    assert logout.status_code == 200
