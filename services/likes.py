"""Like toggling, removal and like-centric read models."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, cast

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.sql import ColumnElement

from core.errors import ConflictError, NotFoundError
from db.errors import is_foreign_key_violation, is_unique_violation
from models import Post, PostLike, User
from .aggregation import (
    AuthorRef,
    Page,
    PostView,
    active_like_condition,
    build_post_view,
    count_active_likes,
)
from .post_policy import (
    build_listable_filter,
    ensure_aware,
    require_owner,
    utcnow,
    visible_to,
)

logger = logging.getLogger(__name__)

POST_NOT_FOUND = "Post not found"
USER_NOT_FOUND = "User not found"
LIKE_NOT_FOUND = "Like not found"
MAX_MOST_LIKED_WINDOW_DAYS = 365


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


def _asc(column: Any) -> Any:
    return cast(Any, column).asc()


class LikeState(str, Enum):
    NONE = "none"
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class LikeTransition:
    previous: LikeState
    current: LikeState
    is_deleted: bool
    liked_at: datetime


@dataclass(frozen=True)
class LikeToggleResult:
    liked: bool
    total_likes: int


@dataclass(frozen=True)
class PostRef:
    id: int
    title: str
    summary: str
    available_at: datetime
    author: AuthorRef | None


@dataclass(frozen=True)
class LikeView:
    id: int
    user_id: int
    post_id: int
    liked_at: datetime
    is_active: bool
    user: AuthorRef | None = None
    post: PostRef | None = None


@dataclass(frozen=True)
class LikeListing:
    items: list[LikeView]
    page: Page


@dataclass(frozen=True)
class MostLikedListing:
    items: list[PostView]
    page: Page
    days: int


def like_state(like: PostLike | None) -> LikeState:
    if like is None:
        return LikeState.NONE
    return LikeState.INACTIVE if like.is_deleted else LikeState.ACTIVE


def next_like_state(like: PostLike | None, now: datetime) -> LikeTransition:
    """Compute the toggle transition for the current like row (or its absence).

    NONE and INACTIVE both move to ACTIVE with ``liked_at`` refreshed to ``now``;
    ACTIVE moves to INACTIVE and keeps its original ``liked_at``.
    """
    previous = like_state(like)
    if like is not None and previous is LikeState.ACTIVE:
        return LikeTransition(
            previous=previous,
            current=LikeState.INACTIVE,
            is_deleted=True,
            liked_at=like.liked_at,
        )
    return LikeTransition(
        previous=previous,
        current=LikeState.ACTIVE,
        is_deleted=False,
        liked_at=now,
    )


async def require_visible_post(
    session: AsyncSession,
    post_id: int,
    *,
    viewer_id: int | None,
    now: datetime | None = None,
) -> Post:
    """Load a post the viewer may reach by id; scheduled posts of others read as missing."""
    post = await session.get(Post, post_id)
    if post is None or not visible_to(post, viewer_id=viewer_id, now=now or utcnow()):
        raise NotFoundError(POST_NOT_FOUND)
    return post


async def _user_exists(session: AsyncSession, user_id: int) -> bool:
    user_id_column = cast(ColumnElement[int], User.id)
    result = await session.execute(select(user_id_column).where(_eq(user_id_column, user_id)))
    return result.scalar_one_or_none() is not None


async def _find_like(session: AsyncSession, *, post_id: int, user_id: int) -> PostLike | None:
    result = await session.execute(
        select(PostLike).where(
            _eq(PostLike.post_id, post_id),
            _eq(PostLike.user_id, user_id),
        )
    )
    return result.scalar_one_or_none()


async def toggle_like(
    session: AsyncSession,
    post_id: int,
    user_id: int,
    *,
    now: datetime | None = None,
) -> LikeToggleResult:
    """Flip the caller's like on a post and return the fresh active total."""
    moment = now or utcnow()
    await require_visible_post(session, post_id, viewer_id=user_id, now=moment)
    if not await _user_exists(session, user_id):
        raise NotFoundError(USER_NOT_FOUND)

    like = await _find_like(session, post_id=post_id, user_id=user_id)
    transition = next_like_state(like, moment)
    if like is None:
        like = PostLike(
            user_id=user_id,
            post_id=post_id,
            liked_at=transition.liked_at,
            is_deleted=transition.is_deleted,
        )
    else:
        like.is_deleted = transition.is_deleted
        like.liked_at = transition.liked_at
    session.add(like)

    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            logger.info(
                "Concurrent first like detected",
                extra={"post_id": post_id, "user_id": user_id},
            )
            raise ConflictError("Like already exists for this post") from exc
        if is_foreign_key_violation(exc):
            raise NotFoundError(POST_NOT_FOUND) from exc
        logger.exception("Failed to toggle like", extra={"post_id": post_id})
        raise
    except Exception:
        await session.rollback()
        logger.exception("Failed to toggle like", extra={"post_id": post_id})
        raise

    total_likes = await count_active_likes(session, post_id)
    liked = transition.current is LikeState.ACTIVE
    logger.info(
        "Like toggled",
        extra={
            "post_id": post_id,
            "user_id": user_id,
            "liked": liked,
            "from_state": transition.previous.value,
            "total_likes": total_likes,
        },
    )
    return LikeToggleResult(liked=liked, total_likes=total_likes)


async def remove_like(
    session: AsyncSession,
    like_id: int,
    *,
    caller_id: int,
) -> None:
    like = await session.get(PostLike, like_id)
    if like is None:
        raise NotFoundError(LIKE_NOT_FOUND)
    require_owner(like.user_id, caller_id)

    if like.is_deleted:
        return

    like.is_deleted = True
    session.add(like)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Failed to remove like", extra={"like_id": like_id})
        raise
    logger.info(
        "Like removed",
        extra={"like_id": like_id, "user_id": caller_id, "post_id": like.post_id},
    )


async def has_user_liked(session: AsyncSession, post_id: int, user_id: int) -> bool:
    like = await _find_like(session, post_id=post_id, user_id=user_id)
    return like is not None and not like.is_deleted


def _like_scope(column: Any, value: int, include_deleted: bool) -> list[ColumnElement[bool]]:
    conditions = [_eq(column, value)]
    if not include_deleted:
        conditions.append(active_like_condition())
    return conditions


async def count_post_likes(
    session: AsyncSession,
    post_id: int,
    *,
    include_deleted: bool = False,
) -> int:
    like_id_column = cast(ColumnElement[int], PostLike.id)
    result = await session.execute(
        select(func.count(like_id_column)).where(
            *_like_scope(PostLike.post_id, post_id, include_deleted)
        )
    )
    return int(result.scalar_one() or 0)


async def count_user_likes(
    session: AsyncSession,
    user_id: int,
    *,
    include_deleted: bool = False,
) -> int:
    like_id_column = cast(ColumnElement[int], PostLike.id)
    result = await session.execute(
        select(func.count(like_id_column)).where(
            *_like_scope(PostLike.user_id, user_id, include_deleted)
        )
    )
    return int(result.scalar_one() or 0)


async def list_post_likes(
    session: AsyncSession,
    post_id: int,
    *,
    include_deleted: bool = False,
    limit: int,
    offset: int = 0,
    viewer_id: int | None = None,
    now: datetime | None = None,
) -> LikeListing:
    await require_visible_post(session, post_id, viewer_id=viewer_id, now=now)

    conditions = _like_scope(PostLike.post_id, post_id, include_deleted)
    total = await count_post_likes(session, post_id, include_deleted=include_deleted)

    like_entity = cast(Any, PostLike)
    user_name_column = cast(ColumnElement[str], User.name)
    query = (
        select(like_entity, user_name_column)
        .join(User, _eq(User.id, PostLike.user_id))
        .where(*conditions)
        .order_by(_desc(PostLike.liked_at), _asc(PostLike.id))
    )
    if offset > 0:
        query = query.offset(offset)
    result = await session.execute(query.limit(limit))

    items = [
        LikeView(
            id=cast(int, like.id),
            user_id=like.user_id,
            post_id=like.post_id,
            liked_at=ensure_aware(like.liked_at),
            is_active=like.is_active,
            user=AuthorRef(id=like.user_id, name=user_name),
        )
        for like, user_name in result.all()
    ]
    return LikeListing(items=items, page=Page(total=total, limit=limit, offset=offset))


async def list_user_likes(
    session: AsyncSession,
    user_id: int,
    *,
    include_deleted: bool = False,
    limit: int,
    offset: int = 0,
) -> LikeListing:
    if not await _user_exists(session, user_id):
        raise NotFoundError(USER_NOT_FOUND)

    conditions = _like_scope(PostLike.user_id, user_id, include_deleted)
    total = await count_user_likes(session, user_id, include_deleted=include_deleted)

    author = aliased(User)
    like_entity = cast(Any, PostLike)
    post_entity = cast(Any, Post)
    author_name_column = cast(ColumnElement[str], author.name)
    query = (
        select(like_entity, post_entity, author_name_column)
        .join(Post, _eq(Post.id, PostLike.post_id))
        .join(author, _eq(author.id, Post.user_id))
        .where(*conditions)
        .order_by(_desc(PostLike.liked_at), _asc(PostLike.id))
    )
    if offset > 0:
        query = query.offset(offset)
    result = await session.execute(query.limit(limit))

    items = [
        LikeView(
            id=cast(int, like.id),
            user_id=like.user_id,
            post_id=like.post_id,
            liked_at=ensure_aware(like.liked_at),
            is_active=like.is_active,
            post=PostRef(
                id=cast(int, post.id),
                title=post.title,
                summary=post.summary,
                available_at=ensure_aware(post.available_at),
                author=AuthorRef(id=post.user_id, name=author_name),
            ),
        )
        for like, post, author_name in result.all()
    ]
    return LikeListing(items=items, page=Page(total=total, limit=limit, offset=offset))


async def list_most_liked_posts(
    session: AsyncSession,
    *,
    days: int,
    limit: int,
    offset: int = 0,
    viewer_id: int | None = None,
    now: datetime | None = None,
) -> MostLikedListing:
    """Published posts from the last ``days`` days ranked by active likes.

    Only posts with at least one active like qualify. Ties fall back to the
    default listing order (newest ``available_at`` first, then lowest id).
    """
    current = now or utcnow()
    window_start = current - timedelta(days=days)

    post_id_column = cast(ColumnElement[int], Post.id)
    like_post_id_column = cast(ColumnElement[int], PostLike.post_id)
    like_count = func.count(cast(ColumnElement[int], PostLike.id)).label("total_likes")
    window_conditions = and_(
        build_listable_filter(now=current),
        cast(Any, Post.available_at) >= window_start,
    )
    ranked = (
        select(like_post_id_column.label("post_id"), like_count)
        .join(Post, _eq(Post.id, PostLike.post_id))
        .where(active_like_condition(), window_conditions)
        .group_by(like_post_id_column)
        .subquery()
    )

    total_result = await session.execute(select(func.count()).select_from(ranked))
    total = int(total_result.scalar_one() or 0)

    post_entity = cast(Any, Post)
    author_name_column = cast(ColumnElement[str], User.name)
    query = (
        select(post_entity, author_name_column, ranked.c.total_likes)
        .join(ranked, _eq(ranked.c.post_id, post_id_column))
        .join(User, _eq(User.id, Post.user_id))
        .order_by(
            _desc(ranked.c.total_likes),
            _desc(Post.available_at),
            _asc(post_id_column),
        )
    )
    if offset > 0:
        query = query.offset(offset)
    result = await session.execute(query.limit(limit))

    items = [
        build_post_view(
            post,
            author_name=author_name,
            total_likes=int(total_likes),
            viewer_id=viewer_id,
        )
        for post, author_name, total_likes in result.all()
    ]
    return MostLikedListing(
        items=items,
        page=Page(total=total, limit=limit, offset=offset),
        days=days,
    )


__all__ = [
    "LIKE_NOT_FOUND",
    "MAX_MOST_LIKED_WINDOW_DAYS",
    "LikeListing",
    "LikeState",
    "LikeToggleResult",
    "LikeTransition",
    "LikeView",
    "MostLikedListing",
    "PostRef",
    "count_post_likes",
    "count_user_likes",
    "has_user_liked",
    "like_state",
    "list_most_liked_posts",
    "list_post_likes",
    "list_user_likes",
    "next_like_state",
    "require_visible_post",
    "remove_like",
    "toggle_like",
]
