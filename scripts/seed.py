"""Database seed script for local development.

Usage:
    python scripts/seed.py

Creates a handful of demo authors, published and scheduled posts, and likes.
Running it twice is safe: existing users, posts and likes are reused.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, cast

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import ColumnElement

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from core.security import hash_password  # noqa: E402
from db.session import AsyncSessionMaker  # noqa: E402
from models import Post, PostLike, User  # noqa: E402


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


@dataclass(frozen=True)
class SeedUser:
    email: str
    name: str


@dataclass(frozen=True)
class SeedPost:
    email: str
    title: str
    summary: str
    content: str
    available_in: timedelta = timedelta(0)


@dataclass(frozen=True)
class SeedSummary:
    users: int
    posts: int
    likes: int


BASE_USERS: Sequence[SeedUser] = [
    SeedUser(email="joao@example.com", name="João Silva"),
    SeedUser(email="maria@example.com", name="Maria Santos"),
    SeedUser(email="pedro@example.com", name="Pedro Oliveira"),
]

BASE_POSTS: Sequence[SeedPost] = [
    SeedPost(
        email="joao@example.com",
        title="Getting started with FastAPI",
        summary="A beginner friendly walk through routers, dependencies and models.",
        content=(
            "FastAPI lets you describe an HTTP API with plain type hints. This post "
            "covers routers, dependency injection, pydantic models and running the "
            "app under uvicorn."
        ),
    ),
    SeedPost(
        email="maria@example.com",
        title="Securing REST APIs",
        summary="Essential habits for keeping bearer-token APIs safe in production.",
        content=(
            "Authentication with signed tokens, strict input validation, HTTPS "
            "everywhere and careful error messages go a long way. We look at each "
            "of them with concrete examples."
        ),
    ),
    SeedPost(
        email="joao@example.com",
        title="Coming soon: what we are building next",
        summary="A preview of the features landing on the platform next week.",
        content=(
            "We are working on several improvements to the platform, including "
            "richer author profiles and better search. This post unlocks once the "
            "release is out."
        ),
        available_in=timedelta(days=7),
    ),
    SeedPost(
        email="pedro@example.com",
        title="Async SQLAlchemy in practice",
        summary="How sessions, transactions and migrations fit together in async code.",
        content=(
            "Async SQLAlchemy pairs an AsyncEngine with short-lived AsyncSession "
            "objects. We cover session scope, commits and rollbacks, and how Alembic "
            "keeps the schema in step."
        ),
    ),
]

# (liker email, index into BASE_POSTS)
BASE_LIKES: Sequence[tuple[str, int]] = [
    ("maria@example.com", 0),
    ("pedro@example.com", 0),
    ("joao@example.com", 1),
    ("pedro@example.com", 1),
    ("joao@example.com", 3),
]

DEFAULT_PASSWORD = "Password123!"


async def get_or_create_user(session: AsyncSession, payload: SeedUser) -> User:
    result = await session.execute(select(User).where(_eq(User.email, payload.email)))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=payload.email,
        name=payload.name,
        password_hash=hash_password(DEFAULT_PASSWORD),
    )
    session.add(user)
    await session.flush()
    return user


async def ensure_posts(
    session: AsyncSession,
    users: dict[str, User],
    posts: Sequence[SeedPost],
    *,
    now: datetime,
) -> list[Post]:
    seeded: list[Post] = []
    for post in posts:
        author = users[post.email]
        if author.id is None:
            raise ValueError("Author missing identifier during seeding")

        result = await session.execute(
            select(Post).where(
                _eq(Post.user_id, author.id),
                _eq(Post.title, post.title),
            )
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            seeded.append(existing)
            continue

        record = Post(
            user_id=author.id,
            title=post.title,
            summary=post.summary,
            content=post.content,
            available_at=now + post.available_in,
        )
        session.add(record)
        await session.flush()
        seeded.append(record)
    return seeded


async def ensure_likes(
    session: AsyncSession,
    users: dict[str, User],
    posts: Sequence[Post],
    likes: Sequence[tuple[str, int]],
    *,
    now: datetime,
) -> int:
    for email, post_index in likes:
        liker = users[email]
        post = posts[post_index]
        if liker.id is None or post.id is None:
            raise ValueError("Seed records missing identifiers")

        result = await session.execute(
            select(PostLike).where(
                _eq(PostLike.user_id, liker.id),
                _eq(PostLike.post_id, post.id),
            )
        )
        if result.scalar_one_or_none():
            continue

        session.add(PostLike(user_id=liker.id, post_id=post.id, liked_at=now))
    return len(likes)


async def seed(
    session_maker: async_sessionmaker[AsyncSession] = AsyncSessionMaker,
) -> SeedSummary:
    now = datetime.now(timezone.utc)
    async with session_maker() as session:
        users: dict[str, User] = {}
        for payload in BASE_USERS:
            user = await get_or_create_user(session, payload)
            users[user.email] = user

        posts = await ensure_posts(session, users, BASE_POSTS, now=now)
        like_total = await ensure_likes(session, users, posts, BASE_LIKES, now=now)
        await session.commit()

    return SeedSummary(users=len(users), posts=len(posts), likes=like_total)


async def main() -> None:
    summary = await seed()
    print("✅ Seed data inserted.")
    print("   Users:", ", ".join(user.email for user in BASE_USERS))
    print("   Default password:", DEFAULT_PASSWORD)
    print("   Posts:", summary.posts)
    print("   Likes:", summary.likes)


if __name__ == "__main__":
    asyncio.run(main())
