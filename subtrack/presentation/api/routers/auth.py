"""API router for sign-up, sign-in and password management."""

from fastapi import APIRouter, Depends, status

from ....core.dependencies import get_user_service
from ....domain.models import User
from ....services.user_service import UserService
from ..dependencies import get_current_user
from ..schemas.user_schemas import (
    AuthResponse,
    ChangePasswordRequest,
    MessageResponse,
    UserResponse,
    UserSignInRequest,
    UserSignUpRequest,
)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/sign-up", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    request: UserSignUpRequest,
    user_service: UserService = Depends(get_user_service),
) -> AuthResponse:
    """Register a new user and return an access token."""
    user, access_token = user_service.register(
        name=request.name,
        last_name=request.last_name,
        email=request.email,
        password=request.password,
    )
    return AuthResponse(access_token=access_token, user=serialize_user(user))


@router.post("/sign-in", response_model=AuthResponse)
async def sign_in(
    request: UserSignInRequest,
    user_service: UserService = Depends(get_user_service),
) -> AuthResponse:
    """Login and get access token."""
    user, access_token = user_service.authenticate(request.email, request.password)
    return AuthResponse(access_token=access_token, user=serialize_user(user))


@router.post("/sign-out", response_model=MessageResponse)
async def sign_out(_: User = Depends(get_current_user)) -> MessageResponse:
    """Tokens are stateless; the client discards its copy."""
    return MessageResponse(message="Sesión cerrada exitosamente")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
) -> MessageResponse:
    user_service.change_password(user.id, request.current_password, request.new_password)
    return MessageResponse(message="Contraseña actualizada exitosamente")


def serialize_user(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        last_name=user.last_name,
        email=user.email,
        created_at=user.created_at,
    )
