"""Pytest fixtures for the blog API."""

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from pathlib import Path
from typing import Any
from uuid import uuid4

from alembic import command
from alembic.config import Config
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from api.deps import get_db
from app import create_app
from core.config import settings
from db.session import build_engine

DEFAULT_TEST_PASSWORD = "Sup3rSecret!"
LONG_CONTENT = (
    "This body is long enough to satisfy the minimum content length enforced "
    "by the post validation rules."
)


def _run_alembic_migrations(database_url: str) -> None:
    """Apply Alembic migrations to the given database URL."""
    project_dir = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_dir / "alembic"))

    original_database_url = settings.database_url
    try:
        settings.database_url = database_url
        command.upgrade(alembic_cfg, "head")
    finally:
        settings.database_url = original_database_url


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory) -> str:
    """Create and migrate a file-backed SQLite database for tests."""
    db_dir = tmp_path_factory.mktemp("sqlite")
    db_path = db_dir / "blog-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"
    _run_alembic_migrations(database_url)
    return database_url


@pytest_asyncio.fixture(scope="session")
async def test_engine(test_database_url: str) -> AsyncIterator[AsyncEngine]:
    """Create an async engine bound to the migrated SQLite test database."""
    engine = build_engine(test_database_url, poolclass=NullPool)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="session")
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture(scope="session")
def app(session_maker) -> Iterator[FastAPI]:
    """Create the FastAPI app with a test database dependency override."""
    application = create_app()

    async def override_get_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Return an HTTPX async client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker) -> AsyncIterator[None]:
    """Clear tables before each test to guarantee isolation."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Provide a raw database session to tests."""
    async with session_maker() as session:
        yield session


def make_user_payload(prefix: str = "author") -> dict[str, str]:
    suffix = uuid4().hex[:8]
    return {
        "name": f"{prefix.title()} {suffix}",
        "email": f"{prefix}_{suffix}@example.com",
        "password": DEFAULT_TEST_PASSWORD,
    }


def make_post_payload(title: str = "A post", **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": title,
        "summary": "A short summary of the post.",
        "content": LONG_CONTENT,
    }
    payload.update(overrides)
    return payload


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


RegisteredUser = dict[str, Any]


@pytest.fixture()
def register_user(
    async_client: AsyncClient,
) -> Callable[..., Awaitable[RegisteredUser]]:
    """Register and log in a user, returning its id, payload and auth headers."""

    async def _register(prefix: str = "author") -> RegisteredUser:
        payload = make_user_payload(prefix)
        created = await async_client.post("/api/v1/users", json=payload)
        assert created.status_code == 201, created.text
        login = await async_client.post(
            "/api/v1/login",
            json={"email": payload["email"], "password": payload["password"]},
        )
        assert login.status_code == 200, login.text
        token = login.json()["token"]
        return {
            "id": created.json()["id"],
            "payload": payload,
            "token": token,
            "headers": bearer(token),
        }

    return _register
