"""UserStore backed by SQLAlchemy (embedded SQLite or managed PostgreSQL)."""

import logging
from datetime import datetime

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import DuplicateEmailError
from app.core.security import utcnow
from app.models import RefreshToken, User, VerificationToken
from app.schemas.auth import UserPublic

logger = logging.getLogger(__name__)


class SqlUserStore:
    """
    One store per DB session (per request, or per CLI run).

    Every mutating call commits. Token consumption uses DELETE ... RETURNING so
    that exactly one caller gets the row when two requests present the same
    token concurrently.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # Users

    def find_user_by_email(self, email: str) -> User | None:
        return self._session.query(User).filter(User.email == email).first()

    def find_user_by_id(self, user_id: int) -> User | None:
        return self._session.get(User, user_id)

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: str = "viewer",
        email_verified: bool = False,
    ) -> User:
        user = User(
            email=email,
            password_hash=password_hash,
            name=name,
            role=role,
            email_verified=1 if email_verified else 0,
        )
        self._session.add(user)
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise DuplicateEmailError() from e
        self._session.refresh(user)
        return user

    def update_user_role(self, user_id: int, role: str) -> bool:
        return self._update_user(user_id, role=role)

    def update_user_name(self, user_id: int, name: str) -> bool:
        return self._update_user(user_id, name=name)

    def _update_user(self, user_id: int, **values: object) -> bool:
        result = self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(updated_at=func.now(), **values)
            .execution_options(synchronize_session="fetch")
        )
        self._session.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        result = self._session.execute(
            delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session="fetch")
        )
        self._session.commit()
        return result.rowcount > 0

    def get_user_count(self) -> int:
        return self._session.query(func.count(User.id)).scalar() or 0

    def get_all_users(self) -> list[UserPublic]:
        users = self._session.query(User).order_by(User.id).all()
        return [UserPublic.model_validate(u) for u in users]

    # Refresh tokens

    def save_refresh_token(self, *, user_id: int, token: str, expires_at: datetime) -> None:
        self._session.add(RefreshToken(user_id=user_id, token=token, expires_at=expires_at))
        self._session.commit()

    def find_refresh_token(self, token: str) -> RefreshToken | None:
        return self._session.query(RefreshToken).filter(RefreshToken.token == token).first()

    def consume_refresh_token(self, token: str) -> RefreshToken | None:
        row = self._session.execute(
            delete(RefreshToken)
            .where(RefreshToken.token == token)
            .returning(
                RefreshToken.user_id,
                RefreshToken.expires_at,
                RefreshToken.created_at,
            )
            .execution_options(synchronize_session=False)
        ).first()
        self._session.commit()
        if row is None:
            return None
        return RefreshToken(
            token=token,
            user_id=row.user_id,
            expires_at=row.expires_at,
            created_at=row.created_at,
        )

    def delete_refresh_token(self, token: str) -> bool:
        result = self._session.execute(
            delete(RefreshToken)
            .where(RefreshToken.token == token)
            .execution_options(synchronize_session=False)
        )
        self._session.commit()
        return result.rowcount > 0

    def delete_user_refresh_tokens(self, user_id: int) -> int:
        result = self._session.execute(
            delete(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        self._session.commit()
        return result.rowcount

    def count_refresh_tokens(self, user_id: int) -> int:
        return (
            self._session.query(func.count(RefreshToken.id))
            .filter(RefreshToken.user_id == user_id)
            .scalar()
            or 0
        )

    def delete_expired_refresh_tokens(self, now: datetime | None = None) -> int:
        cutoff = now or utcnow()
        result = self._session.execute(
            delete(RefreshToken)
            .where(RefreshToken.expires_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        self._session.commit()
        return result.rowcount

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
        # Delete-then-insert in one transaction: at most one pending token per email.
        try:
            self._session.execute(
                delete(VerificationToken)
                .where(VerificationToken.email == email)
                .execution_options(synchronize_session=False)
            )
            self._session.add(
                VerificationToken(
                    email=email,
                    token=token,
                    name=name,
                    password_hash=password_hash,
                    expires_at=expires_at,
                )
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

    def find_verification_token(self, token: str) -> VerificationToken | None:
        return (
            self._session.query(VerificationToken)
            .filter(VerificationToken.token == token)
            .first()
        )

    def find_verification_token_by_email(self, email: str) -> VerificationToken | None:
        return (
            self._session.query(VerificationToken)
            .filter(VerificationToken.email == email)
            .first()
        )

    def consume_verification_token(self, token: str) -> VerificationToken | None:
        row = self._session.execute(
            delete(VerificationToken)
            .where(VerificationToken.token == token)
            .returning(
                VerificationToken.email,
                VerificationToken.name,
                VerificationToken.password_hash,
                VerificationToken.expires_at,
                VerificationToken.created_at,
            )
            .execution_options(synchronize_session=False)
        ).first()
        self._session.commit()
        if row is None:
            return None
        return VerificationToken(
            token=token,
            email=row.email,
            name=row.name,
            password_hash=row.password_hash,
            expires_at=row.expires_at,
            created_at=row.created_at,
        )

    def delete_verification_token(self, token: str) -> bool:
        result = self._session.execute(
            delete(VerificationToken)
            .where(VerificationToken.token == token)
            .execution_options(synchronize_session=False)
        )
        self._session.commit()
        return result.rowcount > 0

    def delete_expired_verification_tokens(self, now: datetime | None = None) -> int:
        cutoff = now or utcnow()
        result = self._session.execute(
            delete(VerificationToken)
            .where(VerificationToken.expires_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        self._session.commit()
        return result.rowcount
