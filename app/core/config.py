"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
# sqlite is the embedded backend; postgres is the managed backend.
VALID_DATABASE_URL_PREFIXES = (
    "sqlite://",
    "sqlite+pysqlite://",
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
    "postgres+psycopg2://",
)


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Embedded SQLite by default; set a postgresql:// URL for the managed backend
    DATABASE_URL: str = "sqlite:///./data/inboxdesk.db"

    # JWT access tokens
    JWT_SECRET: SecretStr = SecretStr("change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 15

    # Opaque refresh tokens, transported only in an HttpOnly cookie
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    REFRESH_COOKIE_NAME: str = "refreshToken"

    # Initial admin, created on startup only when the users table is empty
    ADMIN_EMAIL: str | None = None
    ADMIN_PASSWORD: SecretStr | None = None
    ADMIN_NAME: str = "Admin"

    # Public self-registration with email verification
    REGISTRATION_ENABLED: bool = True
    FRONTEND_URL: str = "http://localhost:5173"

    # SMTP (optional; without SMTP_HOST verification mails are only logged)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USE_TLS: bool = True
    SMTP_USER: str | None = None
    SMTP_PASSWORD: SecretStr | None = None
    SMTP_FROM: str | None = None
    SMTP_TIMEOUT_SEC: float = 30.0

    # Garbage-collect expired refresh/verification tokens during app startup
    TOKEN_CLEANUP_ON_STARTUP: bool = True

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("DATABASE_URL must be set and non-empty")
        if not any(v.startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a SQLite or PostgreSQL URL (e.g. sqlite:///./data/app.db or postgresql://)"
            )
        return v

    @field_validator("API_PREFIX")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            raise ValueError("API_PREFIX must start with '/' (e.g. /api)")
        return v

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value() or not v.get_secret_value().strip():
            raise ValueError("JWT_SECRET must be set and non-empty")
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_ALGORITHM must be set and non-empty")
        return v.strip()

    @field_validator("JWT_EXPIRE_MINUTES")
    @classmethod
    def validate_jwt_expire_minutes(cls, v: int) -> int:
        if v < 1 or v > 1440:
            raise ValueError(
                "JWT_EXPIRE_MINUTES must be between 1 and 1440 (1 min to 1 day)"
            )
        return v

    @field_validator("REFRESH_TOKEN_EXPIRE_DAYS")
    @classmethod
    def validate_refresh_token_expire_days(cls, v: int) -> int:
        if v < 1 or v > 365:
            raise ValueError("REFRESH_TOKEN_EXPIRE_DAYS must be between 1 and 365")
        return v

    @field_validator("REFRESH_COOKIE_NAME")
    @classmethod
    def validate_refresh_cookie_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("REFRESH_COOKIE_NAME must be set and non-empty")
        return v.strip()

    @field_validator("ADMIN_EMAIL", "SMTP_HOST", "SMTP_USER", "SMTP_FROM")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("FRONTEND_URL")
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        s = v.strip().rstrip("/")
        if not (s.lower().startswith("http://") or s.lower().startswith("https://")):
            raise ValueError(
                "FRONTEND_URL must use http or https (e.g. http://localhost:5173)"
            )
        return s

    @field_validator("SMTP_PORT")
    @classmethod
    def validate_smtp_port(cls, v: int) -> int:
        if v < 1 or v > 65535:
            raise ValueError("SMTP_PORT must be between 1 and 65535")
        return v

    @field_validator("SMTP_TIMEOUT_SEC")
    @classmethod
    def validate_smtp_timeout(cls, v: float) -> float:
        if v <= 0 or v > 120:
            raise ValueError("SMTP_TIMEOUT_SEC must be greater than 0 and at most 120")
        return v

    @property
    def admin_bootstrap_configured(self) -> bool:
        """True when both ADMIN_EMAIL and a non-empty ADMIN_PASSWORD are set."""
        return bool(
            self.ADMIN_EMAIL
            and self.ADMIN_PASSWORD is not None
            and self.ADMIN_PASSWORD.get_secret_value()
        )

    @property
    def refresh_cookie_path(self) -> str:
        """Cookie path: the refresh token is only ever sent to the auth routes."""
        return f"{self.API_PREFIX}/auth"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
