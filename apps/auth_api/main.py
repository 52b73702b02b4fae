"""auth-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging
from datetime import timedelta

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from promptstudio_auth.application.errors import SigningError, StoreUnavailableError
from promptstudio_auth.application.ports.password_hasher_port import PasswordHasherPort
from promptstudio_auth.application.services.auth_service import AuthService
from promptstudio_auth.config.settings import Settings, load_settings
from promptstudio_auth.infrastructure.db.refresh_session_repository import (
    SqlAlchemyRefreshSessionRepository,
)
from promptstudio_auth.infrastructure.db.session import create_session_factory
from promptstudio_auth.infrastructure.db.user_repository import SqlAlchemyUserRepository
from promptstudio_auth.infrastructure.http.auth_cookies import AuthCookiePolicy
from promptstudio_auth.infrastructure.http.auth_guard import RequestAuthenticator, RoleAuthorizer
from promptstudio_auth.infrastructure.http.auth_router import (
    AUTH_ROUTE_PREFIX,
    build_auth_router,
)
from promptstudio_auth.infrastructure.logging import configure_logging
from promptstudio_auth.infrastructure.security.password_hasher import BcryptPasswordHasher
from promptstudio_auth.infrastructure.security.token_issuer import TokenIssuer

AUTH_API_HOST = "0.0.0.0"
AUTH_API_PORT = 5000
logger = logging.getLogger(__name__)


def build_token_issuer(settings: Settings) -> TokenIssuer:
    """Build the token issuer from configured secret and lifetimes."""

    return TokenIssuer(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        access_token_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
        refresh_token_ttl=timedelta(days=settings.refresh_token_ttl_days),
    )


def build_auth_service(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    token_issuer: TokenIssuer,
    password_hasher: PasswordHasherPort,
    max_sessions: int,
) -> AuthService:
    """Build authentication service with SQLAlchemy-backed dependencies."""

    return AuthService(
        users=SqlAlchemyUserRepository(session_factory),
        sessions=SqlAlchemyRefreshSessionRepository(session_factory),
        password_hasher=password_hasher,
        token_issuer=token_issuer,
        max_sessions=max_sessions,
    )


def create_app(
    *,
    settings: Settings | None = None,
    token_issuer: TokenIssuer | None = None,
    password_hasher: PasswordHasherPort | None = None,
) -> FastAPI:
    """Create FastAPI app exposing the auth endpoints."""

    if settings is None:
        settings = load_settings()
        configure_logging(level=settings.log_level)
    if token_issuer is None:
        token_issuer = build_token_issuer(settings)
    if password_hasher is None:
        password_hasher = BcryptPasswordHasher()

    session_factory = create_session_factory(settings.database_url)
    auth_service = build_auth_service(
        session_factory,
        token_issuer=token_issuer,
        password_hasher=password_hasher,
        max_sessions=settings.max_sessions_per_user,
    )
    cookie_policy = AuthCookiePolicy(
        secure=settings.secure_cookies,
        access_token_ttl=token_issuer.access_token_ttl,
        refresh_token_ttl=token_issuer.refresh_token_ttl,
        refresh_cookie_path=settings.refresh_cookie_path,
    )

    app = FastAPI(title="PromptStudio Auth API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(
        build_auth_router(
            auth_service=auth_service,
            authenticator=RequestAuthenticator(token_issuer=token_issuer),
            authorizer=RoleAuthorizer(users=SqlAlchemyUserRepository(session_factory)),
            cookie_policy=cookie_policy,
        )
    )

    @app.exception_handler(StoreUnavailableError)
    @app.exception_handler(SigningError)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "request_failed method=%s path=%s error=%s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "internal server error"})

    @app.exception_handler(RequestValidationError)
    async def request_shape_error_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        # Malformed auth input gets the same 400 as AuthValidationError.
        if not request.url.path.startswith(f"{AUTH_ROUTE_PREFIX}/"):
            return await request_validation_exception_handler(request, exc)
        logger.info(
            "request_rejected method=%s path=%s reason=malformed_input",
            request.method,
            request.url.path,
        )
        return JSONResponse(status_code=400, content={"detail": "please provide valid fields"})

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "environment": settings.app_env}

    return app


def run_asgi_server(*, host: str = AUTH_API_HOST, port: int = AUTH_API_PORT) -> None:
    """Run auth-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.auth_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run auth-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
