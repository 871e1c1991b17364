"""Post like model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    UniqueConstraint,
    func,
    text,
)
from sqlmodel import Field, SQLModel


class PostLike(SQLModel, table=True):
    """One row per (user, post); toggling flips ``is_deleted`` instead of deleting."""

    __tablename__ = "post_likes"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="ux_post_likes_user_post"),
        Index("ix_post_likes_post_is_deleted", "post_id", "is_deleted"),
        Index("ix_post_likes_user_liked_at", "user_id", "liked_at"),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    post_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    liked_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    is_deleted: bool = Field(
        default=False,
        sa_column=Column(
            Boolean,
            nullable=False,
            server_default=text("false"),
        ),
    )
    created_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )
    )
    updated_at: datetime = Field(
        sa_column=Column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )
    )

    @property
    def is_active(self) -> bool:
        return not self.is_deleted
