"""Request/response schemas for auth and user management endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["admin", "manager", "viewer"]
ROLES: tuple[str, ...] = ("admin", "manager", "viewer")
DEFAULT_ROLE: Role = "viewer"


class TokenPayload(BaseModel):
    """Claims embedded in a signed access token; a snapshot taken at issue time."""

    user_id: int
    email: str
    role: Role


class UserPublic(BaseModel):
    """User as returned to clients. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: Role
    email_verified: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: str = Field(..., min_length=1, max_length=255, description="Email address")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class RegisterRequest(BaseModel):
    """Admin-issued registration. Role defaults to viewer; it is validated by the service."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    role: str = Field(default=DEFAULT_ROLE, description="admin, manager or viewer")


class PublicRegisterRequest(BaseModel):
    """Self-registration; the account is only created after email verification."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)


class UpdateRoleRequest(BaseModel):
    role: str = Field(..., description="admin, manager or viewer")


class UpdateNameRequest(BaseModel):
    name: str = Field(..., max_length=255)


class AuthResponse(BaseModel):
    """Returned by login and refresh. The refresh token travels only in a cookie."""

    model_config = ConfigDict(populate_by_name=True)

    user: UserPublic
    access_token: str = Field(..., alias="accessToken")


class UserResponse(BaseModel):
    user: UserPublic


class VerifyEmailResponse(BaseModel):
    message: str
    user: UserPublic


class MessageResponse(BaseModel):
    message: str


class RegistrationEnabledResponse(BaseModel):
    enabled: bool


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    users: list[UserPublic]
