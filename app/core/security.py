"""Password hashing and token minting/verification for authentication.

Both classes are pure: no I/O beyond the signing secret they are constructed
with. Build them once at process start (see ``app.api.deps``) and pass them
into ``AuthService``.
"""

import re
import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt
from pydantic import ValidationError

from app.core.errors import HashingError, TokenExpiredError, TokenInvalidError
from app.schemas.auth import TokenPayload

if TYPE_CHECKING:
    from app.core.config import Settings

# Bcrypt cost (log2 rounds).
BCRYPT_ROUNDS = 12

# Input limits shared by request schemas and the service layer.
EMAIL_MAX_LEN = 255
NAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8
# bcrypt only reads the first 72 bytes, so longer passwords are rejected.
PASSWORD_MAX_BYTES = 72

# local@domain.tld with no whitespace and exactly one '@'.
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Random bytes per token; hex-encoded, so the strings are twice as long.
REFRESH_TOKEN_BYTES = 64
VERIFICATION_TOKEN_BYTES = 32
VERIFICATION_TOKEN_TTL = timedelta(hours=24)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite returns these) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email)) and len(email) <= EMAIL_MAX_LEN


def password_problem(password: str) -> str | None:
    """Return why a new password is unacceptable, or None if it is fine."""
    if len(password) < PASSWORD_MIN_LEN:
        return f"Password must be at least {PASSWORD_MIN_LEN} characters long"
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return f"Password must be at most {PASSWORD_MAX_BYTES} bytes long"
    return None


class PasswordHasher:
    """Salted bcrypt hashing with a fixed work factor."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS) -> None:
        self.rounds = rounds

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        # New passwords are capped at 72 bytes; truncation only affects logins with longer input.
        pw_bytes = plain_password.encode("utf-8")[:72]
        try:
            return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")
        except (ValueError, TypeError) as e:
            raise HashingError() from e

    def verify(self, plain_password: str, hashed: str) -> bool:
        """Verify a plain password against a stored hash."""
        pw_bytes = plain_password.encode("utf-8")[:72]
        try:
            return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False


class TokenIssuer:
    """
    Mints signed JWT access tokens and opaque refresh/verification tokens.

    Access tokens are stateless and cannot be revoked before they expire;
    refresh tokens carry no claims and are only meaningful to the store.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_token_minutes: int = 15,
        refresh_token_days: int = 7,
        clock: Clock = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must be non-empty")
        self._secret = secret
        self.algorithm = algorithm
        self.access_token_ttl = timedelta(minutes=access_token_minutes)
        self.refresh_token_ttl = timedelta(days=refresh_token_days)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: "Settings") -> "TokenIssuer":
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            access_token_minutes=settings.JWT_EXPIRE_MINUTES,
            refresh_token_days=settings.REFRESH_TOKEN_EXPIRE_DAYS,
        )

    def now(self) -> datetime:
        return self._clock()

    def issue_access_token(self, payload: TokenPayload) -> str:
        """Create a JWT access token with sub (user id), email, role, iat and exp."""
        now = self._clock()
        claims: dict[str, Any] = {
            "sub": str(payload.user_id),
            "email": payload.email,
            "role": payload.role,
            "iat": now,
            "exp": now + self.access_token_ttl,
        }
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> TokenPayload:
        """
        Validate signature and expiry; return the embedded payload.
        Raises TokenExpiredError past expiry, TokenInvalidError for anything else.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                # Expiry is checked below against the injected clock.
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "exp", "iat"],
                },
            )
        except jwt.PyJWTError as e:
            raise TokenInvalidError() from e

        exp = claims.get("exp")
        if not isinstance(exp, int | float):
            raise TokenInvalidError()
        if self._clock().timestamp() >= exp:
            raise TokenExpiredError()

        try:
            return TokenPayload(
                user_id=int(claims["sub"]),
                email=claims.get("email"),
                role=claims.get("role"),
            )
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise TokenInvalidError("Invalid token payload") from e

    def issue_refresh_token(self) -> str:
        return secrets.token_hex(REFRESH_TOKEN_BYTES)

    def refresh_token_expiry(self, now: datetime | None = None) -> datetime:
        return (now or self._clock()) + self.refresh_token_ttl

    def issue_verification_token(self) -> str:
        return secrets.token_hex(VERIFICATION_TOKEN_BYTES)

    def verification_token_expiry(self, now: datetime | None = None) -> datetime:
        return (now or self._clock()) + VERIFICATION_TOKEN_TTL
