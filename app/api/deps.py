"""Process-wide collaborators and per-request service wiring for FastAPI."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import PasswordHasher, TokenIssuer
from app.services.auth import AuthService
from app.services.mailer import Mailer, build_mailer
from app.stores.base import UserStore
from app.stores.sql import SqlUserStore


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher()


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer.from_settings(get_settings())


@lru_cache
def get_mailer() -> Mailer:
    return build_mailer(get_settings())


def get_user_store(db: Annotated[Session, Depends(get_db)]) -> UserStore:
    return SqlUserStore(db)


def build_auth_service(
    store: UserStore,
    settings: Settings,
    hasher: PasswordHasher | None = None,
    tokens: TokenIssuer | None = None,
    mailer: Mailer | None = None,
) -> AuthService:
    """Assemble an AuthService from settings; used by the API, the lifespan hook and the CLIs."""
    admin_password = settings.ADMIN_PASSWORD.get_secret_value() if settings.ADMIN_PASSWORD else None
    return AuthService(
        store=store,
        hasher=hasher or get_password_hasher(),
        tokens=tokens or get_token_issuer(),
        mailer=mailer or get_mailer(),
        registration_enabled=settings.REGISTRATION_ENABLED,
        admin_email=settings.ADMIN_EMAIL,
        admin_password=admin_password,
        admin_name=settings.ADMIN_NAME,
    )


def get_auth_service(
    store: Annotated[UserStore, Depends(get_user_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> AuthService:
    return build_auth_service(store, settings, hasher=hasher, tokens=tokens, mailer=mailer)
