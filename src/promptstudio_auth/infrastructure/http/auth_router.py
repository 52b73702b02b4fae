"""FastAPI router for register, login, refresh, logout, and profile endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Cookie, Depends, Header, HTTPException, Request, Response

from promptstudio_auth.application.dto.auth_models import (
    AccessTokenResponse,
    AuthResponse,
    EmptyResponse,
    LoginRequest,
    LogoutRequest,
    RegisterRequest,
    SessionListResponse,
    SessionSummary,
    UserProfile,
)
from promptstudio_auth.application.errors import (
    AuthValidationError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    TokenExpiredError,
    UnauthenticatedError,
)
from promptstudio_auth.application.ports.token_issuer_port import AccessTokenIdentity
from promptstudio_auth.application.services.auth_service import AuthService, ClientContext
from promptstudio_auth.infrastructure.http.auth_cookies import (
    ACCESS_TOKEN_COOKIE_NAME,
    REFRESH_TOKEN_COOKIE_NAME,
    AuthCookiePolicy,
)
from promptstudio_auth.infrastructure.http.auth_guard import (
    ADMIN_ONLY,
    RequestAuthenticator,
    RoleAuthorizer,
)

AUTH_ROUTE_PREFIX = "/api/auth"
_EXPIRED_TOKEN_CHALLENGE = 'Bearer error="invalid_token", error_description="token expired"'


def build_auth_router(
    *,
    auth_service: AuthService,
    authenticator: RequestAuthenticator,
    authorizer: RoleAuthorizer,
    cookie_policy: AuthCookiePolicy,
) -> APIRouter:
    """Build router exposing the token-based auth endpoints."""

    router = APIRouter(prefix=AUTH_ROUTE_PREFIX, tags=["auth"])

    async def current_identity(
        authorization: Annotated[str | None, Header()] = None,
        access_token: Annotated[str | None, Cookie(alias=ACCESS_TOKEN_COOKIE_NAME)] = None,
    ) -> AccessTokenIdentity:
        try:
            return authenticator.authenticate(
                authorization_header=authorization,
                access_cookie=access_token,
            )
        except TokenExpiredError as exc:
            raise HTTPException(
                status_code=401,
                detail=str(exc),
                headers={"WWW-Authenticate": _EXPIRED_TOKEN_CHALLENGE},
            ) from exc
        except UnauthenticatedError as exc:
            raise HTTPException(
                status_code=401,
                detail=str(exc),
                headers={"WWW-Authenticate": "Bearer"},
            ) from exc

    @router.post("/register", response_model=AuthResponse, status_code=201)
    async def register(
        payload: RegisterRequest,
        request: Request,
        response: Response,
    ) -> AuthResponse:
        try:
            result = await auth_service.register(
                name=payload.name,
                email=payload.email,
                password=payload.password,
                client=_client_context(request),
            )
        except AuthValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ConflictError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc

        cookie_policy.set_auth_cookies(
            response,
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        )
        return AuthResponse(
            access_token=result.tokens.access_token,
            user=UserProfile.from_record(result.user),
        )

    @router.post("/login", response_model=AuthResponse)
    async def login(
        payload: LoginRequest,
        request: Request,
        response: Response,
    ) -> AuthResponse:
        try:
            result = await auth_service.login(
                email=payload.email,
                password=payload.password,
                client=_client_context(request),
            )
        except AuthValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except InvalidCredentialsError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

        cookie_policy.set_auth_cookies(
            response,
            access_token=result.tokens.access_token,
            refresh_token=result.tokens.refresh_token,
        )
        return AuthResponse(
            access_token=result.tokens.access_token,
            user=UserProfile.from_record(result.user),
        )

    @router.post("/refresh", response_model=AccessTokenResponse)
    async def refresh(
        request: Request,
        response: Response,
        refresh_token: Annotated[str | None, Cookie(alias=REFRESH_TOKEN_COOKIE_NAME)] = None,
    ) -> AccessTokenResponse:
        try:
            tokens = await auth_service.refresh(
                refresh_token=refresh_token,
                client=_client_context(request),
            )
        except UnauthenticatedError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

        cookie_policy.set_auth_cookies(
            response,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
        )
        return AccessTokenResponse(access_token=tokens.access_token)

    @router.post(
        "/logout",
        response_model=EmptyResponse,
        dependencies=[Depends(current_identity)],
    )
    async def logout(
        response: Response,
        payload: Annotated[LogoutRequest | None, Body()] = None,
        refresh_token: Annotated[str | None, Cookie(alias=REFRESH_TOKEN_COOKIE_NAME)] = None,
    ) -> EmptyResponse:
        cookie_policy.clear_auth_cookies(response)
        raw_token = refresh_token or (payload.refresh_token if payload is not None else None)
        await auth_service.logout(refresh_token=raw_token)
        return EmptyResponse()

    @router.post("/logout-all", response_model=EmptyResponse)
    async def logout_all(
        response: Response,
        identity: AccessTokenIdentity = Depends(current_identity),
    ) -> EmptyResponse:
        await auth_service.logout_all(user_id=identity.user_id)
        cookie_policy.clear_auth_cookies(response)
        return EmptyResponse()

    @router.get("/me", response_model=UserProfile)
    async def me(
        identity: AccessTokenIdentity = Depends(current_identity),
    ) -> UserProfile:
        try:
            user = await auth_service.get_profile(user_id=identity.user_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return UserProfile.from_record(user)

    @router.get("/sessions", response_model=SessionListResponse)
    async def sessions(
        identity: AccessTokenIdentity = Depends(current_identity),
    ) -> SessionListResponse:
        records = await auth_service.list_sessions(user_id=identity.user_id)
        return SessionListResponse(
            sessions=[SessionSummary.from_record(record) for record in records]
        )

    @router.get("/users/{user_id}", response_model=UserProfile)
    async def get_user(
        user_id: UUID,
        identity: AccessTokenIdentity = Depends(current_identity),
    ) -> UserProfile:
        try:
            await authorizer.require_role(identity=identity, allowed_roles=ADMIN_ONLY)
            user = await auth_service.get_profile(user_id=user_id)
        except ForbiddenError as exc:
            raise HTTPException(status_code=403, detail=str(exc)) from exc
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return UserProfile.from_record(user)

    return router


def _client_context(request: Request) -> ClientContext:
    """Capture issuing-client metadata recorded on new sessions."""

    return ClientContext(
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
