"""Like toggle, like listings and like removal endpoints."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import get_current_user, get_db, get_optional_user
from core import ConflictError, TokenSubject, settings
from services import likes as like_service
from .pagination import MAX_PAGE_SIZE, apply_page_headers
from .post_views import CountResponse, LikeListResponse, LikeResponse, LikeToggleResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["likes"])

TOGGLE_ATTEMPTS = 2


class LikeStatusResponse(BaseModel):
    liked: bool


@router.post("/posts/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> LikeToggleResponse:
    for attempt in range(1, TOGGLE_ATTEMPTS + 1):
        try:
            result = await like_service.toggle_like(session, post_id, current_user.id)
        except ConflictError:
            if attempt == TOGGLE_ATTEMPTS:
                raise
            logger.info(
                "Retrying like toggle after conflict",
                extra={"post_id": post_id, "user_id": current_user.id},
            )
            continue
        return LikeToggleResponse(liked=result.liked, total_likes=result.total_likes)
    raise ConflictError()


@router.get("/posts/{post_id}/likes", response_model=LikeListResponse)
async def list_post_likes(
    post_id: int,
    response: Response,
    include_deleted: bool = False,
    limit: Annotated[int | None, Query(ge=1, le=MAX_PAGE_SIZE)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    session: AsyncSession = Depends(get_db),
    viewer: TokenSubject | None = Depends(get_optional_user),
) -> LikeListResponse:
    listing = await like_service.list_post_likes(
        session,
        post_id,
        include_deleted=include_deleted,
        limit=limit or settings.default_likes_page_size,
        offset=offset,
        viewer_id=viewer.id if viewer else None,
    )
    return LikeListResponse(
        items=[LikeResponse.from_view(view) for view in listing.items],
        pagination=apply_page_headers(response, listing.page),
    )


@router.get("/posts/{post_id}/likes/count", response_model=CountResponse)
async def count_post_likes(
    post_id: int,
    include_deleted: bool = False,
    session: AsyncSession = Depends(get_db),
    viewer: TokenSubject | None = Depends(get_optional_user),
) -> CountResponse:
    await like_service.require_visible_post(
        session, post_id, viewer_id=viewer.id if viewer else None
    )
    total = await like_service.count_post_likes(
        session, post_id, include_deleted=include_deleted
    )
    return CountResponse(total=total)


@router.get("/posts/{post_id}/liked", response_model=LikeStatusResponse)
async def has_liked(
    post_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> LikeStatusResponse:
    await like_service.require_visible_post(session, post_id, viewer_id=current_user.id)
    liked = await like_service.has_user_liked(session, post_id, current_user.id)
    return LikeStatusResponse(liked=liked)


@router.delete("/likes/{like_id}", status_code=status.HTTP_200_OK)
async def remove_like(
    like_id: int,
    session: AsyncSession = Depends(get_db),
    current_user: TokenSubject = Depends(get_current_user),
) -> dict[str, Any]:
    await like_service.remove_like(session, like_id, caller_id=current_user.id)
    return {"detail": "Like removed"}
