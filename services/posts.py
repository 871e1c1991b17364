"""Post application service: creation, listing, ownership-guarded mutation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core.errors import NotFoundError
from models import Post, PostLike, User
from .aggregation import (
    Page,
    PostRow,
    PostView,
    assemble_post_views,
    build_post_view,
    count_active_likes,
)
from .post_policy import (
    build_listable_filter,
    ensure_aware,
    require_owner,
    utcnow,
    validate_availability,
    validate_schedule_window,
    visible_to,
)

logger = logging.getLogger(__name__)

POST_NOT_FOUND = "Post not found"
USER_NOT_FOUND = "User not found"
UPDATABLE_FIELDS = ("title", "summary", "content", "available_at")


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


def _asc(column: Any) -> Any:
    return cast(Any, column).asc()


@dataclass(frozen=True)
class PostFilters:
    include_scheduled: bool = False
    user_id: int | None = None
    search: str | None = None


@dataclass(frozen=True)
class PostListing:
    items: list[PostView]
    page: Page


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_post_conditions(filters: PostFilters, *, now: datetime) -> list[ColumnElement[bool]]:
    conditions = [
        build_listable_filter(now=now, include_scheduled=filters.include_scheduled)
    ]
    if filters.user_id is not None:
        conditions.append(_eq(Post.user_id, filters.user_id))
    search = (filters.search or "").strip()
    if search:
        pattern = f"%{escape_like(search)}%"
        conditions.append(
            cast(
                ColumnElement[bool],
                or_(
                    cast(Any, Post.title).ilike(pattern, escape="\\"),
                    cast(Any, Post.summary).ilike(pattern, escape="\\"),
                    cast(Any, Post.content).ilike(pattern, escape="\\"),
                ),
            )
        )
    return conditions


async def _require_user(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user


async def _require_post(session: AsyncSession, post_id: int) -> Post:
    result = await session.execute(select(Post).where(_eq(Post.id, post_id)).limit(1))
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFoundError(POST_NOT_FOUND)
    return post


async def _load_post_row(session: AsyncSession, post_id: int) -> PostRow | None:
    post_entity = cast(Any, Post)
    author_name_column = cast(ColumnElement[str], User.name)
    result = await session.execute(
        select(post_entity, author_name_column)
        .join(User, _eq(User.id, Post.user_id))
        .where(_eq(Post.id, post_id))
        .limit(1)
    )
    row = result.first()
    if row is None:
        return None
    post, author_name = row
    return post, author_name


async def _view_for(
    session: AsyncSession,
    post: Post,
    *,
    author_name: str | None,
    viewer_id: int | None,
) -> PostView:
    if post.id is None:
        raise ValueError("Post record missing identifier")
    total_likes = await count_active_likes(session, post.id)
    return build_post_view(
        post,
        author_name=author_name,
        total_likes=total_likes,
        viewer_id=viewer_id,
    )


async def create_post(
    session: AsyncSession,
    *,
    user_id: int,
    title: str,
    summary: str,
    content: str,
    available_at: datetime | None = None,
    now: datetime | None = None,
) -> PostView:
    current = now or utcnow()
    author = await _require_user(session, user_id)
    publish_at = (
        validate_availability(available_at, current) if available_at is not None else current
    )

    post = Post(
        user_id=user_id,
        title=title,
        summary=summary,
        content=content,
        available_at=publish_at,
    )
    session.add(post)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Failed to create post", extra={"user_id": user_id})
        raise
    await session.refresh(post)

    logger.info(
        "Post created",
        extra={"post_id": post.id, "user_id": user_id, "available_at": publish_at.isoformat()},
    )
    return build_post_view(post, author_name=author.name, total_likes=0, viewer_id=user_id)


async def list_posts(
    session: AsyncSession,
    filters: PostFilters,
    *,
    limit: int,
    offset: int = 0,
    viewer_id: int | None = None,
    now: datetime | None = None,
) -> PostListing:
    current = now or utcnow()
    conditions = build_post_conditions(filters, now=current)

    post_id_column = cast(ColumnElement[int], Post.id)
    count_result = await session.execute(
        select(func.count(post_id_column)).where(*conditions)
    )
    total = int(count_result.scalar_one() or 0)

    post_entity = cast(Any, Post)
    author_name_column = cast(ColumnElement[str], User.name)
    query = (
        select(post_entity, author_name_column)
        .join(User, _eq(User.id, Post.user_id))
        .where(*conditions)
        .order_by(_desc(Post.available_at), _asc(Post.id))
    )
    if offset > 0:
        query = query.offset(offset)
    query = query.limit(limit)

    result = await session.execute(query)
    rows = cast(list[PostRow], [(post, name) for post, name in result.all()])
    items = await assemble_post_views(session, rows, viewer_id=viewer_id)

    logger.debug(
        "Posts listed",
        extra={"total": total, "returned": len(items), "limit": limit, "offset": offset},
    )
    return PostListing(items=items, page=Page(total=total, limit=limit, offset=offset))


async def list_user_posts(
    session: AsyncSession,
    user_id: int,
    filters: PostFilters,
    *,
    limit: int,
    offset: int = 0,
    viewer_id: int | None = None,
    now: datetime | None = None,
) -> PostListing:
    await _require_user(session, user_id)
    scoped = PostFilters(
        include_scheduled=filters.include_scheduled,
        user_id=user_id,
        search=filters.search,
    )
    return await list_posts(
        session,
        scoped,
        limit=limit,
        offset=offset,
        viewer_id=viewer_id,
        now=now,
    )


async def count_posts(
    session: AsyncSession,
    filters: PostFilters,
    *,
    now: datetime | None = None,
) -> int:
    conditions = build_post_conditions(filters, now=now or utcnow())
    post_id_column = cast(ColumnElement[int], Post.id)
    result = await session.execute(select(func.count(post_id_column)).where(*conditions))
    return int(result.scalar_one() or 0)


async def get_post_by_id(
    session: AsyncSession,
    post_id: int,
    *,
    viewer_id: int | None = None,
    now: datetime | None = None,
) -> PostView:
    row = await _load_post_row(session, post_id)
    if row is None:
        raise NotFoundError(POST_NOT_FOUND)
    post, author_name = row
    if not visible_to(post, viewer_id=viewer_id, now=now or utcnow()):
        raise NotFoundError(POST_NOT_FOUND)
    return await _view_for(session, post, author_name=author_name, viewer_id=viewer_id)


async def update_post(
    session: AsyncSession,
    post_id: int,
    changes: dict[str, Any],
    *,
    caller_id: int,
    now: datetime | None = None,
) -> PostView:
    post = await _require_post(session, post_id)
    require_owner(post.user_id, caller_id)

    applied: list[str] = []
    for field_name in UPDATABLE_FIELDS:
        if field_name not in changes or changes[field_name] is None:
            continue
        value = changes[field_name]
        if field_name == "available_at":
            value = validate_availability(value, now or utcnow())
        setattr(post, field_name, value)
        applied.append(field_name)

    if applied:
        session.add(post)
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Failed to update post", extra={"post_id": post_id})
            raise
        await session.refresh(post)
        logger.info(
            "Post updated",
            extra={"post_id": post_id, "user_id": caller_id, "fields": applied},
        )

    author = await session.get(User, post.user_id)
    return await _view_for(
        session,
        post,
        author_name=author.name if author is not None else None,
        viewer_id=caller_id,
    )


async def schedule_post(
    session: AsyncSession,
    post_id: int,
    available_at: datetime,
    *,
    caller_id: int,
    now: datetime | None = None,
) -> PostView:
    post = await _require_post(session, post_id)
    require_owner(post.user_id, caller_id)
    post.available_at = validate_schedule_window(available_at, now or utcnow())

    session.add(post)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Failed to schedule post", extra={"post_id": post_id})
        raise
    await session.refresh(post)

    logger.info(
        "Post scheduled",
        extra={
            "post_id": post_id,
            "user_id": caller_id,
            "available_at": ensure_aware(post.available_at).isoformat(),
        },
    )
    author = await session.get(User, post.user_id)
    return await _view_for(
        session,
        post,
        author_name=author.name if author is not None else None,
        viewer_id=caller_id,
    )


async def delete_post(
    session: AsyncSession,
    post_id: int,
    *,
    caller_id: int,
) -> None:
    post = await _require_post(session, post_id)
    require_owner(post.user_id, caller_id)

    await session.execute(delete(PostLike).where(_eq(PostLike.post_id, post_id)))
    await session.delete(post)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Failed to delete post", extra={"post_id": post_id})
        raise

    logger.info("Post deleted", extra={"post_id": post_id, "user_id": caller_id})


__all__ = [
    "POST_NOT_FOUND",
    "PostFilters",
    "PostListing",
    "build_post_conditions",
    "count_posts",
    "create_post",
    "delete_post",
    "escape_like",
    "get_post_by_id",
    "list_posts",
    "list_user_posts",
    "schedule_post",
    "update_post",
]
