"""Persistence contract the auth core depends on.

Two backends implement it: ``SqlUserStore`` (SQLite or PostgreSQL through
SQLAlchemy) and ``InMemoryUserStore`` (tests, local tooling).
"""

from datetime import datetime
from typing import Protocol

from app.models import RefreshToken, User, VerificationToken
from app.schemas.auth import UserPublic


class UserStore(Protocol):
    # Users
    def find_user_by_email(self, email: str) -> User | None: ...

    def find_user_by_id(self, user_id: int) -> User | None: ...

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: str = "viewer",
        email_verified: bool = False,
    ) -> User:
        """Insert a user. Raises DuplicateEmailError if the email is taken."""
        ...

    def update_user_role(self, user_id: int, role: str) -> bool: ...

    def update_user_name(self, user_id: int, name: str) -> bool: ...

    def delete_user(self, user_id: int) -> bool: ...

    def get_user_count(self) -> int: ...

    def get_all_users(self) -> list[UserPublic]: ...

    # Refresh tokens
    def save_refresh_token(self, *, user_id: int, token: str, expires_at: datetime) -> None: ...

    def find_refresh_token(self, token: str) -> RefreshToken | None: ...

    def consume_refresh_token(self, token: str) -> RefreshToken | None:
        """Atomically delete the token and return the deleted row (None if absent)."""
        ...

    def delete_refresh_token(self, token: str) -> bool: ...

    def delete_user_refresh_tokens(self, user_id: int) -> int: ...

    def count_refresh_tokens(self, user_id: int) -> int: ...

    def delete_expired_refresh_tokens(self, now: datetime | None = None) -> int: ...

    # Email verification tokens
    def create_verification_token(
        self,
        *,
        email: str,
        token: str,
        name: str,
        password_hash: str,
        expires_at: datetime,
    ) -> None:
        """Replace any pending token for the email with this one, atomically."""
        ...

    def find_verification_token(self, token: str) -> VerificationToken | None: ...

    def find_verification_token_by_email(self, email: str) -> VerificationToken | None: ...

    def consume_verification_token(self, token: str) -> VerificationToken | None:
        """Atomically delete the token and return the deleted row (None if absent)."""
        ...

    def delete_verification_token(self, token: str) -> bool: ...

    def delete_expired_verification_tokens(self, now: datetime | None = None) -> int: ...
