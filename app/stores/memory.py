"""In-process UserStore for tests and local tooling. Not shared across processes."""

import threading
from datetime import datetime

from app.core.errors import DuplicateEmailError
from app.core.security import as_utc, utcnow
from app.models import RefreshToken, User, VerificationToken
from app.schemas.auth import UserPublic


class InMemoryUserStore:
    """
    Dict-backed store with the same semantics as SqlUserStore.

    A single lock stands in for the database's row-level atomicity, so
    consume_* behaves like DELETE ... RETURNING.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[int, User] = {}
        self._refresh_tokens: dict[str, RefreshToken] = {}
        self._verification_tokens: dict[str, VerificationToken] = {}
        self._next_user_id = 1

    # Users

    def find_user_by_email(self, email: str) -> User | None:
        with self._lock:
            return next((u for u in self._users.values() if u.email == email), None)

    def find_user_by_id(self, user_id: int) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: str = "viewer",
        email_verified: bool = False,
    ) -> User:
        with self._lock:
            if any(u.email == email for u in self._users.values()):
                raise DuplicateEmailError()
            now = utcnow()
            user = User(
                id=self._next_user_id,
                email=email,
                password_hash=password_hash,
                name=name,
                role=role,
                email_verified=1 if email_verified else 0,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            self._next_user_id += 1
            return user

    def update_user_role(self, user_id: int, role: str) -> bool:
        return self._update_user(user_id, role=role)

    def update_user_name(self, user_id: int, name: str) -> bool:
        return self._update_user(user_id, name=name)

    def _update_user(self, user_id: int, **values: object) -> bool:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return False
            for key, value in values.items():
                setattr(user, key, value)
            user.updated_at = utcnow()
            return True

    def delete_user(self, user_id: int) -> bool:
        with self._lock:
            if self._users.pop(user_id, None) is None:
                return False
            # Mirrors ON DELETE CASCADE.
            for token, row in list(self._refresh_tokens.items()):
                if row.user_id == user_id:
                    del self._refresh_tokens[token]
            return True

    def get_user_count(self) -> int:
        with self._lock:
            return len(self._users)

    def get_all_users(self) -> list[UserPublic]:
        with self._lock:
            return [UserPublic.model_validate(u) for _, u in sorted(self._users.items())]

    # Refresh tokens

    def save_refresh_token(self, *, user_id: int, token: str, expires_at: datetime) -> None:
        with self._lock:
            if token in self._refresh_tokens:
                raise ValueError("Refresh token already exists")
            self._refresh_tokens[token] = RefreshToken(
                user_id=user_id,
                token=token,
                expires_at=expires_at,
                created_at=utcnow(),
            )

    def find_refresh_token(self, token: str) -> RefreshToken | None:
        with self._lock:
            return self._refresh_tokens.get(token)

    def consume_refresh_token(self, token: str) -> RefreshToken | None:
        with self._lock:
            return self._refresh_tokens.pop(token, None)

    def delete_refresh_token(self, token: str) -> bool:
        with self._lock:
            return self._refresh_tokens.pop(token, None) is not None

    def delete_user_refresh_tokens(self, user_id: int) -> int:
        with self._lock:
            doomed = [t for t, row in self._refresh_tokens.items() if row.user_id == user_id]
            for token in doomed:
                del self._refresh_tokens[token]
            return len(doomed)

    def count_refresh_tokens(self, user_id: int) -> int:
        with self._lock:
            return sum(1 for row in self._refresh_tokens.values() if row.user_id == user_id)

    def delete_expired_refresh_tokens(self, now: datetime | None = None) -> int:
        cutoff = now or utcnow()
        with self._lock:
            doomed = [
                t for t, row in self._refresh_tokens.items() if as_utc(row.expires_at) < cutoff
            ]
            for token in doomed:
                del self._refresh_tokens[token]
            return len(doomed)

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
        with self._lock:
            for existing, row in list(self._verification_tokens.items()):
                if row.email == email:
                    del self._verification_tokens[existing]
            self._verification_tokens[token] = VerificationToken(
                email=email,
                token=token,
                name=name,
                password_hash=password_hash,
                expires_at=expires_at,
                created_at=utcnow(),
            )

    def find_verification_token(self, token: str) -> VerificationToken | None:
        with self._lock:
            return self._verification_tokens.get(token)

    def find_verification_token_by_email(self, email: str) -> VerificationToken | None:
        with self._lock:
            return next(
                (row for row in self._verification_tokens.values() if row.email == email),
                None,
            )

    def consume_verification_token(self, token: str) -> VerificationToken | None:
        with self._lock:
            return self._verification_tokens.pop(token, None)

    def delete_verification_token(self, token: str) -> bool:
        with self._lock:
            return self._verification_tokens.pop(token, None) is not None

    def delete_expired_verification_tokens(self, now: datetime | None = None) -> int:
        cutoff = now or utcnow()
        with self._lock:
            doomed = [
                t
                for t, row in self._verification_tokens.items()
                if as_utc(row.expires_at) < cutoff
            ]
            for token in doomed:
                del self._verification_tokens[token]
            return len(doomed)
