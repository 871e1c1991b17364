"""SQLModel models package."""

from .post import Post
from .post_like import PostLike
from .user import User

__all__ = [
    "User",
    "Post",
    "PostLike",
]
