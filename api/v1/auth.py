"""Registration, login and current-profile endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db
from core import TokenSubject
from models import User
from services import users as user_service

router = APIRouter(tags=["auth"])

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MAX_PASSWORD_LENGTH = 50


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        if user.id is None:
            raise ValueError("User record missing identifier")
        return cls.model_validate(user)


class RegisterRequest(BaseModel):
    name: str = Field(min_length=MIN_NAME_LENGTH, max_length=MAX_NAME_LENGTH)
    email: EmailStr
    password: str = Field(min_length=6, max_length=MAX_PASSWORD_LENGTH)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(
        default=None, min_length=MIN_NAME_LENGTH, max_length=MAX_NAME_LENGTH
    )
    email: EmailStr | None = None
    current_password: str | None = Field(default=None, min_length=6)
    new_password: str | None = Field(
        default=None, min_length=6, max_length=MAX_PASSWORD_LENGTH
    )

    @model_validator(mode="after")
    def _check_fields(self) -> "ProfileUpdateRequest":
        if (self.current_password is None) != (self.new_password is None):
            raise ValueError(
                "Both current_password and new_password are required to change the password"
            )
        if all(
            value is None
            for value in (self.name, self.email, self.current_password, self.new_password)
        ):
            raise ValueError("At least one field must be provided")
        return self


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=6)
    new_password: str = Field(min_length=6, max_length=MAX_PASSWORD_LENGTH)


@router.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await user_service.create_user(
        session,
        name=payload.name,
        email=str(payload.email),
        password=payload.password,
    )
    return UserResponse.from_user(user)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db),
) -> LoginResponse:
    result = await user_service.authenticate_user(
        session,
        email=str(payload.email),
        password=payload.password,
    )
    return LoginResponse(user=UserResponse.from_user(result.user), token=result.token)


@router.get("/me", response_model=UserResponse)
async def read_me(
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> UserResponse:
    user = await user_service.get_user_by_id(session, current_user.id)
    return UserResponse.from_user(user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    payload: ProfileUpdateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> UserResponse:
    user = await user_service.update_user(
        session,
        current_user.id,
        name=payload.name,
        email=str(payload.email) if payload.email is not None else None,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return UserResponse.from_user(user)


@router.put("/me/password", status_code=status.HTTP_200_OK)
async def change_my_password(
    payload: PasswordChangeRequest,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> dict[str, Any]:
    await user_service.change_password(
        session,
        current_user.id,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return {"detail": "Password updated"}


@router.delete("/me", status_code=status.HTTP_200_OK)
async def delete_me(
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> dict[str, Any]:
    await user_service.delete_user(session, current_user.id)
    return {"detail": "Account deleted"}
