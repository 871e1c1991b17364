"""Post creation, listing, retrieval and owner-only mutation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db, get_optional_user
from core import TokenSubject, settings
from services import likes as like_service
from services import posts as post_service
from services.likes import MAX_MOST_LIKED_WINDOW_DAYS
from .pagination import MAX_PAGE_SIZE, apply_page_headers
from .post_views import (
    CountResponse,
    MostLikedPostListResponse,
    PostListResponse,
    PostResponse,
)

router = APIRouter(prefix="/posts", tags=["posts"])

MAX_TITLE_LENGTH = 200
MIN_SUMMARY_LENGTH = 10
MAX_SUMMARY_LENGTH = 500
MIN_CONTENT_LENGTH = 50
MAX_CONTENT_LENGTH = 10_000
MAX_SEARCH_LENGTH = 100


class PostCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    summary: str = Field(min_length=MIN_SUMMARY_LENGTH, max_length=MAX_SUMMARY_LENGTH)
    content: str = Field(min_length=MIN_CONTENT_LENGTH, max_length=MAX_CONTENT_LENGTH)
    available_at: datetime | None = None


class PostUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=MAX_TITLE_LENGTH)
    summary: str | None = Field(
        default=None, min_length=MIN_SUMMARY_LENGTH, max_length=MAX_SUMMARY_LENGTH
    )
    content: str | None = Field(
        default=None, min_length=MIN_CONTENT_LENGTH, max_length=MAX_CONTENT_LENGTH
    )
    available_at: datetime | None = None

    @model_validator(mode="after")
    def _require_any_field(self) -> "PostUpdateRequest":
        if all(
            value is None
            for value in (self.title, self.summary, self.content, self.available_at)
        ):
            raise ValueError("At least one field must be provided")
        return self


class PostScheduleRequest(BaseModel):
    available_at: datetime


def _viewer_id(viewer: TokenSubject | None) -> int | None:
    return viewer.id if viewer is not None else None


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PostResponse)
async def create_post(
    payload: PostCreateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> PostResponse:
    view = await post_service.create_post(
        session,
        user_id=current_user.id,
        title=payload.title,
        summary=payload.summary,
        content=payload.content,
        available_at=payload.available_at,
    )
    return PostResponse.from_view(view)


@router.get("", response_model=PostListResponse)
async def list_posts(
    response: Response,
    include_scheduled: bool = False,
    user_id: Annotated[int | None, Query(ge=1)] = None,
    search: Annotated[str | None, Query(max_length=MAX_SEARCH_LENGTH)] = None,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    viewer: TokenSubject | None = Depends(get_optional_user),
) -> PostListResponse:
    listing = await post_service.list_posts(
        session,
        post_service.PostFilters(
            include_scheduled=include_scheduled,
            user_id=user_id,
            search=search,
        ),
        limit=limit or settings.default_posts_page_size,
        offset=offset,
        viewer_id=_viewer_id(viewer),
    )
    return PostListResponse(
        items=[PostResponse.from_view(view) for view in listing.items],
        pagination=apply_page_headers(response, listing.page),
    )


@router.get("/count", response_model=CountResponse)
async def count_posts(
    include_scheduled: bool = False,
    user_id: Annotated[int | None, Query(ge=1)] = None,
    search: Annotated[str | None, Query(max_length=MAX_SEARCH_LENGTH)] = None,
    session: AsyncSession = Depends(get_db),
) -> CountResponse:
    total = await post_service.count_posts(
        session,
        post_service.PostFilters(
            include_scheduled=include_scheduled,
            user_id=user_id,
            search=search,
        ),
    )
    return CountResponse(total=total)


@router.get("/most-liked", response_model=MostLikedPostListResponse)
async def list_most_liked_posts(
    response: Response,
    days: Annotated[int | None, Query(ge=1, le=MAX_MOST_LIKED_WINDOW_DAYS)] = None,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    viewer: TokenSubject | None = Depends(get_optional_user),
) -> MostLikedPostListResponse:
    listing = await like_service.list_most_liked_posts(
        session,
        days=days or settings.most_liked_window_days,
        limit=limit or settings.default_posts_page_size,
        offset=offset,
        viewer_id=_viewer_id(viewer),
    )
    return MostLikedPostListResponse(
        items=[PostResponse.from_view(view) for view in listing.items],
        pagination=apply_page_headers(response, listing.page),
        days=listing.days,
    )


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    viewer: TokenSubject | None = Depends(get_optional_user),
) -> PostResponse:
    view = await post_service.get_post_by_id(session, post_id, viewer_id=_viewer_id(viewer))
    return PostResponse.from_view(view)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    payload: PostUpdateRequest,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> PostResponse:
    view = await post_service.update_post(
        session,
        post_id,
        payload.model_dump(exclude_unset=True),
        caller_id=current_user.id,
    )
    return PostResponse.from_view(view)


@router.put("/{post_id}/schedule", response_model=PostResponse)
async def schedule_post(
    post_id: int,
    payload: PostScheduleRequest,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> PostResponse:
    view = await post_service.schedule_post(
        session,
        post_id,
        payload.available_at,
        caller_id=current_user.id,
    )
    return PostResponse.from_view(view)


@router.delete("/{post_id}", status_code=status.HTTP_200_OK)
async def delete_post(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> dict[str, Any]:
    await post_service.delete_post(session, post_id, caller_id=current_user.id)
    return {"detail": "Post deleted"}
