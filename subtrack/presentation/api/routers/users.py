"""API router for user profiles."""

from fastapi import APIRouter, Depends, Query, status

from ....core.dependencies import get_user_service
from ....domain.errors import Forbidden
from ....domain.models import User
from ....services.user_service import UserService
from ..dependencies import get_current_user
from ..schemas.user_schemas import UserListResponse, UserResponse, UserUpdateRequest
from .auth import serialize_user

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    _: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserListResponse:
    result = user_service.list_users(page=page, limit=limit)
    return UserListResponse(
        items=[serialize_user(user) for user in result["users"]],
        pagination=result["pagination"],
    )


@router.get("/me", response_model=UserResponse)
async def get_profile(user: User = Depends(get_current_user)) -> UserResponse:
    """Get current user profile."""
    return serialize_user(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    _: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    return serialize_user(user_service.get_by_id(user_id))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    request: UserUpdateRequest,
    user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> UserResponse:
    _require_self(user, user_id)
    updated = user_service.update_profile(user_id, name=request.name, last_name=request.last_name)
    return serialize_user(updated)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> None:
    _require_self(user, user_id)
    user_service.delete_user(user_id)


def _require_self(user: User, user_id: int) -> None:
    if user.id != user_id:
        raise Forbidden("No autorizado para modificar este usuario")
