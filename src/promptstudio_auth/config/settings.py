"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveInt = Annotated[int, Field(gt=0)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    jwt_secret: NonEmptyStr = Field(validation_alias="JWT_SECRET")
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256",
        validation_alias="JWT_ALGORITHM",
    )
    access_token_ttl_minutes: PositiveInt = Field(
        default=15,
        validation_alias="ACCESS_TOKEN_TTL_MINUTES",
    )
    refresh_token_ttl_days: PositiveInt = Field(
        default=7,
        validation_alias=AliasChoices("REFRESH_TOKEN_TTL_DAYS", "JWT_COOKIE_EXPIRE"),
    )
    max_sessions_per_user: PositiveInt = Field(
        default=5,
        validation_alias="MAX_SESSIONS_PER_USER",
    )
    app_env: Literal["development", "production", "test"] = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )
    cookie_secure: bool | None = Field(default=None, validation_alias="COOKIE_SECURE")
    refresh_cookie_path: NonEmptyStr = Field(
        default="/api/auth/refresh",
        validation_alias="REFRESH_COOKIE_PATH",
    )
    cors_allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        validation_alias="CORS_ALLOWED_ORIGINS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def secure_cookies(self) -> bool:
        """Mark cookies Secure in production unless explicitly overridden."""

        if self.cookie_secure is not None:
            return self.cookie_secure
        return self.app_env == "production"

    @property
    def cors_origins(self) -> list[str]:
        """Return configured CORS origins as a list."""

        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
