"""User administration endpoints (admin only)."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import get_auth_service
from app.api.v1.auth import require_role
from app.schemas.auth import (
    MessageResponse,
    TokenPayload,
    UpdateNameRequest,
    UpdateRoleRequest,
    UserResponse,
    UsersListResponse,
)
from app.services.auth import AuthService

router = APIRouter()

require_admin = require_role("admin")


@router.get("", response_model=UsersListResponse)
def list_users(
    admin: Annotated[TokenPayload, Depends(require_admin)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UsersListResponse:
    """List all users without password hashes."""
    return UsersListResponse(users=service.list_users(admin))


@router.put("/{user_id}/role", response_model=UserResponse)
def update_role(
    user_id: int,
    body: UpdateRoleRequest,
    admin: Annotated[TokenPayload, Depends(require_admin)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    """
    Change a user's role. Admins cannot change their own role.
    The user's existing access tokens keep the old role until they refresh.
    """
    return UserResponse(user=service.update_user_role(admin, user_id, body.role))


@router.put("/{user_id}/name", response_model=UserResponse)
def update_name(
    user_id: int,
    body: UpdateNameRequest,
    admin: Annotated[TokenPayload, Depends(require_admin)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> UserResponse:
    return UserResponse(user=service.update_user_name(admin, user_id, body.name))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    admin: Annotated[TokenPayload, Depends(require_admin)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> MessageResponse:
    """Delete a user and all of their sessions. Admins cannot delete themselves."""
    service.delete_user(admin, user_id)
    return MessageResponse(message="User deleted successfully")
