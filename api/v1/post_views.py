"""Shared post/like response models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from services.aggregation import AuthorRef, PostView
from services.likes import LikeView, PostRef
from .pagination import PaginationMeta


class AuthorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str

    @classmethod
    def from_ref(cls, ref: AuthorRef | None) -> "AuthorResponse | None":
        if ref is None:
            return None
        return cls(id=ref.id, name=ref.name)


class PostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    summary: str
    content: str
    available_at: datetime
    created_at: datetime
    updated_at: datetime
    author: AuthorResponse | None = None
    total_likes: int = 0
    allow_edit: bool = False
    allow_remove: bool = False

    @classmethod
    def from_view(cls, view: PostView) -> "PostResponse":
        return cls(
            id=view.id,
            user_id=view.user_id,
            title=view.title,
            summary=view.summary,
            content=view.content,
            available_at=view.available_at,
            created_at=view.created_at,
            updated_at=view.updated_at,
            author=AuthorResponse.from_ref(view.author),
            total_likes=view.total_likes,
            allow_edit=view.allow_edit,
            allow_remove=view.allow_remove,
        )


PostResponse.model_rebuild()


class PostListResponse(BaseModel):
    items: list[PostResponse]
    pagination: PaginationMeta


class MostLikedPostListResponse(PostListResponse):
    days: int


class LikedPostResponse(BaseModel):
    id: int
    title: str
    summary: str
    available_at: datetime
    author: AuthorResponse | None = None

    @classmethod
    def from_ref(cls, ref: PostRef) -> "LikedPostResponse":
        return cls(
            id=ref.id,
            title=ref.title,
            summary=ref.summary,
            available_at=ref.available_at,
            author=AuthorResponse.from_ref(ref.author),
        )


class LikeResponse(BaseModel):
    id: int
    user_id: int
    post_id: int
    liked_at: datetime
    is_active: bool
    user: AuthorResponse | None = None
    post: LikedPostResponse | None = None

    @classmethod
    def from_view(cls, view: LikeView) -> "LikeResponse":
        return cls(
            id=view.id,
            user_id=view.user_id,
            post_id=view.post_id,
            liked_at=view.liked_at,
            is_active=view.is_active,
            user=AuthorResponse.from_ref(view.user),
            post=LikedPostResponse.from_ref(view.post) if view.post is not None else None,
        )


class LikeListResponse(BaseModel):
    items: list[LikeResponse]
    pagination: PaginationMeta


class LikeToggleResponse(BaseModel):
    liked: bool
    total_likes: int


class CountResponse(BaseModel):
    total: int
