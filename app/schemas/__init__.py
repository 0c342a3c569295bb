"""Pydantic request/response schemas."""

from app.schemas.auth import (
    DEFAULT_ROLE,
    ROLES,
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PublicRegisterRequest,
    RegisterRequest,
    RegistrationEnabledResponse,
    Role,
    TokenPayload,
    UpdateNameRequest,
    UpdateRoleRequest,
    UserPublic,
    UserResponse,
    UsersListResponse,
    VerifyEmailResponse,
)
from app.schemas.health import HealthResponse

__all__ = [
    "DEFAULT_ROLE",
    "ROLES",
    "AuthResponse",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "PublicRegisterRequest",
    "RegisterRequest",
    "RegistrationEnabledResponse",
    "Role",
    "TokenPayload",
    "UpdateNameRequest",
    "UpdateRoleRequest",
    "UserPublic",
    "UserResponse",
    "UsersListResponse",
    "VerifyEmailResponse",
]
