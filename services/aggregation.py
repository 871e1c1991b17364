"""Read-side assembly of posts with author identity and active like totals."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from math import ceil
from typing import Any, cast

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import Post, PostLike
from .post_policy import can_mutate, ensure_aware


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(frozen=True)
class AuthorRef:
    id: int
    name: str


@dataclass(frozen=True)
class PostView:
    """A post as handed to the HTTP layer: row data plus derived fields."""

    id: int
    user_id: int
    title: str
    summary: str
    content: str
    available_at: datetime
    created_at: datetime
    updated_at: datetime
    author: AuthorRef | None
    total_likes: int
    allow_edit: bool = False
    allow_remove: bool = False


@dataclass(frozen=True)
class Page:
    total: int
    limit: int
    offset: int

    @property
    def pages(self) -> int:
        if self.limit <= 0:
            return 0
        return ceil(self.total / self.limit)

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


PostRow = tuple[Post, str | None]


def active_like_condition() -> ColumnElement[bool]:
    return _eq(PostLike.is_deleted, False)


async def count_active_likes(session: AsyncSession, post_id: int) -> int:
    """Count active likes for one post straight from the store."""
    like_id_column = cast(ColumnElement[int], PostLike.id)
    result = await session.execute(
        select(func.count(like_id_column)).where(
            _eq(PostLike.post_id, post_id),
            active_like_condition(),
        )
    )
    return int(result.scalar_one() or 0)


async def collect_like_counts(
    session: AsyncSession,
    post_ids: Sequence[int],
) -> dict[int, int]:
    """Return ``{post_id: active like count}``; posts without likes are absent."""
    if not post_ids:
        return {}

    post_id_column = cast(ColumnElement[int], PostLike.post_id)
    like_id_column = cast(ColumnElement[int], PostLike.id)
    result = await session.execute(
        select(post_id_column, func.count(like_id_column))
        .where(post_id_column.in_(list(post_ids)), active_like_condition())
        .group_by(post_id_column)
    )
    return {post_id: int(total) for post_id, total in result.all()}


def build_post_view(
    post: Post,
    *,
    author_name: str | None,
    total_likes: int,
    viewer_id: int | None = None,
) -> PostView:
    if post.id is None:
        raise ValueError("Post record missing identifier")
    allowed = can_mutate(post.user_id, viewer_id)
    return PostView(
        id=post.id,
        user_id=post.user_id,
        title=post.title,
        summary=post.summary,
        content=post.content,
        available_at=ensure_aware(post.available_at),
        created_at=ensure_aware(post.created_at),
        updated_at=ensure_aware(post.updated_at),
        author=AuthorRef(id=post.user_id, name=author_name) if author_name is not None else None,
        total_likes=total_likes,
        allow_edit=allowed,
        allow_remove=allowed,
    )


async def assemble_post_views(
    session: AsyncSession,
    rows: Sequence[PostRow],
    *,
    viewer_id: int | None = None,
) -> list[PostView]:
    post_ids = [post.id for post, _author_name in rows if post.id is not None]
    count_map = await collect_like_counts(session, post_ids)
    return [
        build_post_view(
            post,
            author_name=author_name,
            total_likes=count_map.get(post.id, 0) if post.id is not None else 0,
            viewer_id=viewer_id,
        )
        for post, author_name in rows
    ]


__all__ = [
    "AuthorRef",
    "Page",
    "PostRow",
    "PostView",
    "active_like_condition",
    "assemble_post_views",
    "build_post_view",
    "collect_like_counts",
    "count_active_likes",
]
