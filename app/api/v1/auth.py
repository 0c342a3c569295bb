"""Auth routes and auth dependencies (require_auth, require_role, optional_auth)."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.deps import get_auth_service, get_token_issuer
from app.core.config import Settings, get_settings
from app.core.errors import (
    AuthError,
    ForbiddenError,
    InvalidInputError,
    UnauthenticatedError,
)
from app.core.security import TokenIssuer
from app.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PublicRegisterRequest,
    RegisterRequest,
    RegistrationEnabledResponse,
    TokenPayload,
    UserResponse,
    VerifyEmailResponse,
)
from app.services.auth import AuthResult, AuthService

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


def require_auth(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> TokenPayload:
    """
    Dependency: require a valid Bearer access token and attach its payload to request.state.user.

    Raises UnauthenticatedError if the header is missing or not a Bearer token,
    TokenExpiredError (code TOKEN_EXPIRED, so clients refresh) or TokenInvalidError.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()
    payload = tokens.verify_access_token(credentials.credentials)
    request.state.user = payload
    return payload


def check_role(principal: TokenPayload | None, allowed: tuple[str, ...]) -> TokenPayload:
    """Raise UnauthenticatedError without a principal, ForbiddenError if its role is not allowed."""
    if principal is None:
        raise UnauthenticatedError()
    if principal.role not in allowed:
        logger.info(
            "Role check failed",
            extra={"user_id": principal.user_id, "role": principal.role, "allowed": list(allowed)},
        )
        raise ForbiddenError()
    return principal


def require_role(*roles: str) -> Callable[..., TokenPayload]:
    """Dependency factory: require_auth plus membership of the principal's role in roles."""

    def dependency(
        request: Request,
        _principal: Annotated[TokenPayload, Depends(require_auth)],
    ) -> TokenPayload:
        return check_role(getattr(request.state, "user", None), roles)

    return dependency


def optional_auth(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
) -> TokenPayload | None:
    """Dependency: attach the payload when a valid token is present; anonymous callers get None."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        payload = tokens.verify_access_token(credentials.credentials)
    except AuthError:
        # An unusable token is treated as anonymous.
        return None
    request.state.user = payload
    return payload


def set_refresh_cookie(response: Response, result: AuthResult, settings: Settings) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=result.refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        path=settings.refresh_cookie_path,
        secure=settings.APP_ENV == "prod",
        httponly=True,
        samesite="strict",
    )


def clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        path=settings.refresh_cookie_path,
        secure=settings.APP_ENV == "prod",
        httponly=True,
        samesite="strict",
    )


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns the user and a JWT access token.
    The refresh token is set as an HttpOnly cookie. Send the access token as: Bearer <accessToken>
    """
    result = service.login(body.email, body.password)
    set_refresh_cookie(response, result, settings)
    return AuthResponse(user=result.user, access_token=result.access_token)


@router.post("/refresh", response_model=AuthResponse)
def refresh(
    request: Request,
    response: Response,
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """Exchange the refresh cookie for a new access token and a rotated refresh cookie."""
    result = service.refresh(request.cookies.get(settings.REFRESH_COOKIE_NAME))
    set_refresh_cookie(response, result, settings)
    return AuthResponse(user=result.user, access_token=result.access_token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    _principal: Annotated[TokenPayload, Depends(require_auth)],
    service: Annotated[AuthService, Depends(get_auth_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> MessageResponse:
    service.logout(request.cookies.get(settings.REFRESH_COOKIE_NAME))
    clear_refresh_cookie(response, settings)
    return MessageResponse(message="Logged out successfully")


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    admin: Annotated[TokenPayload, Depends(require_role("admin"))],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    """Create a pre-verified account (admin only)."""
    user = service.register_admin(body.email, body.password, body.name, body.role, acting=admin)
    return UserResponse(user=user)


@router.post(
    "/register-public",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_public(
    body: PublicRegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Self-registration: stores a pending account and emails a verification link."""
    service.register_public(body.email, body.password, body.name)
    return MessageResponse(
        message="Registration successful. Please check your email to confirm your account."
    )


@router.get("/verify-email", response_model=VerifyEmailResponse)
def verify_email(
    service: Annotated[AuthService, Depends(get_auth_service)],
    token: Annotated[str | None, Query()] = None,
) -> VerifyEmailResponse:
    if not token:
        raise InvalidInputError("Verification token missing", field="token")
    user = service.verify_email(token)
    return VerifyEmailResponse(
        message="Email verified successfully. You can now log in.",
        user=user,
    )


@router.get("/me", response_model=UserResponse)
def me(
    principal: Annotated[TokenPayload, Depends(require_auth)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    return UserResponse(user=service.get_current_user(principal))


@router.get("/registration-enabled", response_model=RegistrationEnabledResponse)
def registration_enabled(
    settings: Annotated[Settings, Depends(get_settings)],
) -> RegistrationEnabledResponse:
    return RegistrationEnabledResponse(enabled=settings.REGISTRATION_ENABLED)
