"""Async engine and session factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core import settings


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, _connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    connect_args: dict[str, Any] = {}
    if _is_sqlite(database_url):
        connect_args["check_same_thread"] = False
    engine = create_async_engine(
        database_url,
        echo=settings.database_echo,
        connect_args=connect_args,
        **kwargs,
    )
    if _is_sqlite(database_url):
        enable_sqlite_foreign_keys(engine)
    return engine


async_engine = build_engine(settings.database_url)
AsyncSessionMaker = async_sessionmaker(async_engine, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionMaker() as session:
        yield session


__all__ = [
    "AsyncSessionMaker",
    "async_engine",
    "build_engine",
    "enable_sqlite_foreign_keys",
    "get_session",
]
