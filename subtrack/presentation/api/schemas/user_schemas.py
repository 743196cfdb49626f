"""Pydantic schemas for user and authentication API endpoints."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, field_validator

from ....domain.validation import check_password, clean_person_name


class UserSignUpRequest(BaseModel):
    """Request schema for user registration."""

    name: str
    last_name: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return clean_person_name(value)

    @field_validator("last_name")
    @classmethod
    def _check_last_name(cls, value: str) -> str:
        return clean_person_name(value, label="El apellido")

    @field_validator("password")
    @classmethod
    def _check_password(cls, value: str) -> str:
        return check_password(value)


class UserSignInRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _check_new_password(cls, value: str) -> str:
        return check_password(value)


class UserUpdateRequest(BaseModel):
    """Request schema for profile updates. Email and password are not editable here."""

    name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else clean_person_name(value)

    @field_validator("last_name")
    @classmethod
    def _check_last_name(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else clean_person_name(value, label="El apellido")


class UserResponse(BaseModel):
    """Response schema for user data."""

    id: int
    name: str
    last_name: str
    email: str
    created_at: datetime


class AuthResponse(BaseModel):
    """Response schema for sign-up and sign-in."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class UserPaginationResponse(BaseModel):
    current_page: int
    total_pages: int
    total_users: int
    has_next_page: bool
    has_prev_page: bool


class UserListResponse(BaseModel):
    items: List[UserResponse]
    pagination: UserPaginationResponse


class MessageResponse(BaseModel):
    message: str
