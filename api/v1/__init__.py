"""Version 1 of the HTTP API."""

from fastapi import APIRouter

from . import auth, likes, posts, users

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(posts.router)
api_router.include_router(likes.router)

__all__ = ["api_router"]
