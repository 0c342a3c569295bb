"""Authentication service: login, refresh rotation, logout, registration, verification.

Collaborators (store, hasher, token issuer, mailer) are injected; the service
keeps no state between calls beyond what it writes to the store. Raw
passwords and tokens are never logged, only user ids and error kinds.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from app.core.errors import (
    DuplicateEmailError,
    EmailDeliveryFailedError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidRoleError,
    MissingTokenError,
    RegistrationDisabledError,
    SelfModificationError,
    TokenExpiredError,
    TokenNotFoundError,
    UnauthenticatedError,
    UserNotFoundError,
)
from app.core.security import (
    NAME_MAX_LEN,
    PasswordHasher,
    TokenIssuer,
    as_utc,
    is_valid_email,
    password_problem,
)
from app.models import User
from app.schemas.auth import DEFAULT_ROLE, ROLES, TokenPayload, UserPublic
from app.services.mailer import Mailer
from app.stores.base import UserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """Outcome of login/refresh. refresh_token goes into the cookie, never the body."""

    user: UserPublic
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


def to_public_user(user: User) -> UserPublic:
    """Strip the password hash; every path that returns a user goes through here."""
    return UserPublic.model_validate(user)


class AuthService:
    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        mailer: Mailer,
        registration_enabled: bool = True,
        admin_email: str | None = None,
        admin_password: str | None = None,
        admin_name: str = "Admin",
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._tokens = tokens
        self._mailer = mailer
        self.registration_enabled = registration_enabled
        self._admin_email = admin_email
        self._admin_password = admin_password
        self._admin_name = admin_name

    # Sessions

    def login(self, email: str, password: str) -> AuthResult:
        """
        Verify credentials and start a session.

        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        user = self._store.find_user_by_email(email)
        if user is None or not self._hasher.verify(password, user.password_hash):
            logger.info("Login failed", extra={"error_kind": InvalidCredentialsError.code})
            raise InvalidCredentialsError()
        result = self._start_session(user)
        logger.info("Login succeeded", extra={"user_id": user.id, "role": user.role})
        return result

    def refresh(self, refresh_token: str | None) -> AuthResult:
        """
        Rotate a refresh token: the presented token is consumed on every path,
        and a fresh one is issued only if it was valid.
        """
        if not refresh_token:
            raise MissingTokenError()

        # Atomic delete-and-return: of two concurrent refreshes with the same
        # token, only one gets the row.
        stored = self._store.consume_refresh_token(refresh_token)
        if stored is None:
            raise TokenNotFoundError("Invalid refresh token")
        if as_utc(stored.expires_at) < self._tokens.now():
            logger.info("Refresh rejected", extra={"user_id": stored.user_id, "error_kind": "TOKEN_EXPIRED"})
            raise TokenExpiredError("Refresh token expired")

        user = self._store.find_user_by_id(stored.user_id)
        if user is None:
            logger.info("Refresh rejected", extra={"user_id": stored.user_id, "error_kind": "USER_NOT_FOUND"})
            raise UserNotFoundError(status_code=401)

        result = self._start_session(user)
        logger.info("Refresh token rotated", extra={"user_id": user.id})
        return result

    def logout(self, refresh_token: str | None) -> None:
        """Delete the refresh token if present. Idempotent."""
        if refresh_token:
            deleted = self._store.delete_refresh_token(refresh_token)
            logger.info("Logout", extra={"session_deleted": deleted})

    def _start_session(self, user: User) -> AuthResult:
        payload = TokenPayload(user_id=user.id, email=user.email, role=user.role)
        access_token = self._tokens.issue_access_token(payload)
        refresh_token = self._tokens.issue_refresh_token()
        expires_at = self._tokens.refresh_token_expiry()
        self._store.save_refresh_token(user_id=user.id, token=refresh_token, expires_at=expires_at)
        return AuthResult(
            user=to_public_user(user),
            access_token=access_token,
            refresh_token=refresh_token,
            refresh_expires_at=expires_at,
        )

    # Registration

    def register_admin(
        self,
        email: str,
        password: str,
        name: str,
        role: str = DEFAULT_ROLE,
        acting: TokenPayload | None = None,
    ) -> UserPublic:
        """Create a pre-verified account on behalf of an admin."""
        self._require_admin(acting)
        name = self._validate_name(name)
        if not is_valid_email(email):
            raise InvalidInputError("Invalid email format", field="email")
        self._validate_password(password)

        if self._store.find_user_by_email(email) is not None:
            raise DuplicateEmailError()
        if role not in ROLES:
            raise InvalidRoleError()

        user = self._store.create_user(
            email=email,
            password_hash=self._hasher.hash(password),
            name=name,
            role=role,
            email_verified=True,
        )
        logger.info(
            "User registered by admin",
            extra={"user_id": user.id, "role": user.role, "acting_user_id": acting.user_id},
        )
        return to_public_user(user)

    def register_public(self, email: str, password: str, name: str) -> None:
        """
        Store a pending registration and mail its verification link.

        The password is hashed now, so the plaintext is never stored. While a
        pending registration for the email is still valid, a repeat request
        re-sends its link unchanged: no new token, and the stored name and
        password hash are kept.
        """
        if not self.registration_enabled:
            raise RegistrationDisabledError()
        if not is_valid_email(email):
            raise InvalidInputError("Invalid email format", field="email")
        self._validate_password(password)
        name = self._validate_name(name)

        if self._store.find_user_by_email(email) is not None:
            raise DuplicateEmailError()

        now = self._tokens.now()
        pending = self._store.find_verification_token_by_email(email)
        reused = pending is not None and as_utc(pending.expires_at) > now
        if reused:
            # The pending payload belongs to whoever received the first link;
            # a repeat request only re-sends that link and changes nothing.
            token, name = pending.token, pending.name
        else:
            token = self._tokens.issue_verification_token()
            self._store.create_verification_token(
                email=email,
                token=token,
                name=name,
                password_hash=self._hasher.hash(password),
                expires_at=self._tokens.verification_token_expiry(now),
            )

        if not self._mailer.send_verification_email(email, name, token):
            logger.warning("Public registration: verification email not delivered")
            raise EmailDeliveryFailedError()
        logger.info("Public registration pending verification", extra={"reused_token": reused})

    def verify_email(self, token: str | None) -> UserPublic:
        """
        Complete a self-registration. The token is consumed on every path, so a
        second call with the same token fails with TokenNotFoundError.
        """
        if not token:
            raise TokenNotFoundError("Verification token missing", status_code=400)

        pending = self._store.consume_verification_token(token)
        if pending is None:
            raise TokenNotFoundError("Invalid or expired verification token", status_code=400)
        if as_utc(pending.expires_at) < self._tokens.now():
            logger.info("Email verification rejected", extra={"error_kind": "TOKEN_EXPIRED"})
            raise TokenExpiredError("Verification token expired", status_code=400)
        # An admin may have created the account while verification was pending.
        if self._store.find_user_by_email(pending.email) is not None:
            logger.info("Email verification rejected", extra={"error_kind": "DUPLICATE_EMAIL"})
            raise DuplicateEmailError()

        user = self._store.create_user(
            email=pending.email,
            password_hash=pending.password_hash,
            name=pending.name,
            role=DEFAULT_ROLE,
            email_verified=True,
        )
        logger.info("Email verified, user created", extra={"user_id": user.id, "role": user.role})
        return to_public_user(user)

    # Startup and maintenance

    def bootstrap_initial_admin(self) -> UserPublic | None:
        """
        Create the configured admin when the users table is empty; no-op otherwise.

        Not safe against two processes booting at once on an empty database;
        serialize bootstrap externally for multi-process deployments.
        """
        if not self._admin_email or not self._admin_password:
            return None
        if self._store.get_user_count() != 0:
            return None
        try:
            user = self._store.create_user(
                email=self._admin_email,
                password_hash=self._hasher.hash(self._admin_password),
                name=self._admin_name,
                role="admin",
                email_verified=True,
            )
        except DuplicateEmailError:
            logger.warning("Initial admin already created by another process")
            return None
        logger.info("Initial admin user created", extra={"user_id": user.id})
        return to_public_user(user)

    def cleanup_expired_tokens(self) -> int:
        deleted = self._store.delete_expired_refresh_tokens(self._tokens.now())
        if deleted > 0:
            logger.info("Expired refresh tokens deleted", extra={"deleted": deleted})
        return deleted

    def cleanup_expired_verification_tokens(self) -> int:
        deleted = self._store.delete_expired_verification_tokens(self._tokens.now())
        if deleted > 0:
            logger.info("Expired verification tokens deleted", extra={"deleted": deleted})
        return deleted

    # Current user and user administration

    def get_current_user(self, principal: TokenPayload) -> UserPublic:
        user = self._store.find_user_by_id(principal.user_id)
        if user is None:
            raise UserNotFoundError()
        return to_public_user(user)

    def list_users(self, acting: TokenPayload | None) -> list[UserPublic]:
        self._require_admin(acting)
        return self._store.get_all_users()

    def update_user_role(self, acting: TokenPayload | None, user_id: int, role: str) -> UserPublic:
        """Change another user's role. Takes effect at that user's next refresh or login."""
        self._require_admin(acting)
        self._reject_self(acting, user_id, "change their own role")
        if role not in ROLES:
            raise InvalidRoleError()
        if not self._store.update_user_role(user_id, role):
            raise UserNotFoundError()
        logger.info("User role changed", extra={"user_id": user_id, "role": role, "acting_user_id": acting.user_id})
        return self._load_public_user(user_id)

    def update_user_name(self, acting: TokenPayload | None, user_id: int, name: str) -> UserPublic:
        self._require_admin(acting)
        name = self._validate_name(name)
        if not self._store.update_user_name(user_id, name):
            raise UserNotFoundError()
        return self._load_public_user(user_id)

    def delete_user(self, acting: TokenPayload | None, user_id: int) -> None:
        self._require_admin(acting)
        self._reject_self(acting, user_id, "delete their own account")
        self._store.delete_user_refresh_tokens(user_id)
        if not self._store.delete_user(user_id):
            raise UserNotFoundError()
        logger.info("User deleted", extra={"user_id": user_id, "acting_user_id": acting.user_id})

    def _load_public_user(self, user_id: int) -> UserPublic:
        user = self._store.find_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return to_public_user(user)

    @staticmethod
    def _require_admin(acting: TokenPayload | None) -> None:
        if acting is None:
            raise UnauthenticatedError()
        if acting.role != "admin":
            raise ForbiddenError()

    @staticmethod
    def _reject_self(acting: TokenPayload, user_id: int, action: str) -> None:
        if acting.user_id == user_id:
            logger.info("Self-modification rejected", extra={"user_id": user_id})
            raise SelfModificationError(f"Users cannot {action}")

    @staticmethod
    def _validate_password(password: str) -> None:
        problem = password_problem(password or "")
        if problem:
            raise InvalidInputError(problem, field="password")

    @staticmethod
    def _validate_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Name is required", field="name")
        if len(name) > NAME_MAX_LEN:
            raise InvalidInputError(f"Name must be at most {NAME_MAX_LEN} characters", field="name")
        return name
