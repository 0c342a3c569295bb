"""Authentication and authorization errors.

Each error carries one user-facing message, one machine-readable code and one
HTTP status. The FastAPI app renders them via a single exception handler; the
service layer never builds HTTP responses itself.
"""


class AuthError(Exception):
    """Base class for every error raised by the auth core."""

    code = "AUTH_ERROR"
    status_code = 400
    default_message = "Authentication error"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password. Deliberately the same error for both."""

    code = "INVALID_CREDENTIALS"
    status_code = 401
    default_message = "Invalid email or password"


class InvalidInputError(AuthError):
    """A request field failed validation."""

    code = "INVALID_INPUT"
    status_code = 400
    default_message = "Invalid input"

    def __init__(self, message: str | None = None, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class DuplicateEmailError(AuthError):
    code = "DUPLICATE_EMAIL"
    status_code = 409
    default_message = "A user with this email already exists"


class InvalidRoleError(AuthError):
    code = "INVALID_ROLE"
    status_code = 400
    default_message = "Invalid role"


class RegistrationDisabledError(AuthError):
    code = "REGISTRATION_DISABLED"
    status_code = 403
    default_message = "Registration is disabled"


class TokenExpiredError(AuthError):
    """Token is past its expiry. Clients use the code to decide to refresh."""

    code = "TOKEN_EXPIRED"
    status_code = 401
    default_message = "Token expired"


class TokenInvalidError(AuthError):
    """Malformed token, bad signature or wrong secret."""

    code = "TOKEN_INVALID"
    status_code = 401
    default_message = "Invalid token"


class TokenNotFoundError(AuthError):
    """Unknown (or already consumed) refresh or verification token."""

    code = "TOKEN_NOT_FOUND"
    status_code = 401
    default_message = "Invalid token"


class MissingTokenError(AuthError):
    code = "MISSING_TOKEN"
    status_code = 401
    default_message = "No refresh token provided"


class UnauthenticatedError(AuthError):
    code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(AuthError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Not permitted to perform this action"


class UserNotFoundError(AuthError):
    code = "USER_NOT_FOUND"
    status_code = 404
    default_message = "User not found"


class SelfModificationError(AuthError):
    """A caller tried to delete their own account or change their own role."""

    code = "SELF_MODIFICATION"
    status_code = 400
    default_message = "You cannot perform this action on your own account"


class EmailDeliveryFailedError(AuthError):
    code = "EMAIL_DELIVERY_FAILED"
    status_code = 500
    default_message = "Verification email could not be sent. Please try again later."


class HashingError(AuthError):
    code = "HASHING_ERROR"
    status_code = 500
    default_message = "Internal server error"
