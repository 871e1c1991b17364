"""User directory endpoints and per-user post/like listings."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, EmailStr, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db, get_optional_user
from core import TokenSubject, settings
from services import likes as like_service
from services import posts as post_service
from services import users as user_service
from services.post_policy import require_owner
from .auth import MAX_NAME_LENGTH, MIN_NAME_LENGTH, UserResponse
from .pagination import (
    MAX_PAGE_SIZE,
    MAX_USERS_PAGE_SIZE,
    PaginationMeta,
    apply_page_headers,
)
from .post_views import (
    CountResponse,
    LikeListResponse,
    LikeResponse,
    PostListResponse,
    PostResponse,
)

router = APIRouter(prefix="/users", tags=["users"])

MAX_SEARCH_LENGTH = 100


class UserListResponse(BaseModel):
    items: list[UserResponse]
    pagination: PaginationMeta


class UserUpdateRequest(BaseModel):
    name: str | None = Field(
        default=None, min_length=MIN_NAME_LENGTH, max_length=MAX_NAME_LENGTH
    )
    email: EmailStr | None = None

    @model_validator(mode="after")
    def _require_any_field(self) -> "UserUpdateRequest":
        if self.name is None and self.email is None:
            raise ValueError("At least one field must be provided")
        return self


@router.get("", response_model=UserListResponse)
async def list_users(
    response: Response,
    search: Annotated[str | None, Query(max_length=MAX_SEARCH_LENGTH)] = None,
    email: Annotated[str | None, Query(max_length=255)] = None,
    limit: Annotated[int | None, Query(ge=1, le=MAX_USERS_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
) -> UserListResponse:
    listing = await user_service.list_users(
        session,
        user_service.UserFilters(search=search, email=email),
        limit=limit or settings.default_users_page_size,
        offset=offset,
    )
    return UserListResponse(
        items=[UserResponse.from_user(user) for user in listing.items],
        pagination=apply_page_headers(response, listing.page),
    )


@router.get("/count", response_model=CountResponse)
async def count_users(
    search: Annotated[str | None, Query(max_length=MAX_SEARCH_LENGTH)] = None,
    email: Annotated[str | None, Query(max_length=255)] = None,
    session: AsyncSession = Depends(get_db),
) -> CountResponse:
    total = await user_service.count_users(
        session, user_service.UserFilters(search=search, email=email)
    )
    return CountResponse(total=total)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    session: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await user_service.get_user_by_id(session, user_id)
    return UserResponse.from_user(user)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> UserResponse:
    await user_service.get_user_by_id(session, user_id)
    require_owner(user_id, current_user.id)
    user = await user_service.update_user(
        session,
        user_id,
        name=payload.name,
        email=str(payload.email) if payload.email is not None else None,
    )
    return UserResponse.from_user(user)


@router.delete("/{user_id}", status_code=status.HTTP_200_OK)
async def delete_user(
    user_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> dict[str, Any]:
    await user_service.get_user_by_id(session, user_id)
    require_owner(user_id, current_user.id)
    await user_service.delete_user(session, user_id)
    return {"detail": "User deleted"}


@router.get("/{user_id}/posts", response_model=PostListResponse)
async def list_user_posts(
    user_id: int,
    response: Response,
    include_scheduled: bool = False,
    search: Annotated[str | None, Query(max_length=MAX_SEARCH_LENGTH)] = None,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    viewer: TokenSubject | None = Depends(get_optional_user),
) -> PostListResponse:
    listing = await post_service.list_user_posts(
        session,
        user_id,
        post_service.PostFilters(include_scheduled=include_scheduled, search=search),
        limit=limit or settings.default_user_posts_page_size,
        offset=offset,
        viewer_id=viewer.id if viewer is not None else None,
    )
    return PostListResponse(
        items=[PostResponse.from_view(view) for view in listing.items],
        pagination=apply_page_headers(response, listing.page),
    )


@router.get("/{user_id}/likes", response_model=LikeListResponse)
async def list_user_likes(
    user_id: int,
    response: Response,
    include_deleted: bool = False,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
) -> LikeListResponse:
    listing = await like_service.list_user_likes(
        session,
        user_id,
        include_deleted=include_deleted,
        limit=limit or settings.default_likes_page_size,
        offset=offset,
    )
    return LikeListResponse(
        items=[LikeResponse.from_view(view) for view in listing.items],
        pagination=apply_page_headers(response, listing.page),
    )


@router.get("/{user_id}/likes/count", response_model=CountResponse)
async def count_user_likes(
    user_id: int,
    include_deleted: bool = False,
    session: AsyncSession = Depends(get_db),
) -> CountResponse:
    await user_service.get_user_by_id(session, user_id)
    total = await like_service.count_user_likes(
        session, user_id, include_deleted=include_deleted
    )
    return CountResponse(total=total)
