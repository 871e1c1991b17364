"""Business logic services."""

from .aggregation import AuthorRef, Page, PostView
from .likes import LikeToggleResult, next_like_state, toggle_like
from .post_policy import can_mutate, is_listable, require_owner
from .posts import PostFilters, PostListing
from .users import AuthResult, UserFilters, password_strength

__all__ = [
    "AuthorRef",
    "Page",
    "PostView",
    "LikeToggleResult",
    "next_like_state",
    "toggle_like",
    "can_mutate",
    "is_listable",
    "require_owner",
    "PostFilters",
    "PostListing",
    "AuthResult",
    "UserFilters",
    "password_strength",
]
