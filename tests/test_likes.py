"""Tests for the like toggle, like listings and like removal."""

from datetime import datetime, timedelta, timezone
from typing import Any, cast

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core.errors import ConflictError, NotFoundError
from models import Post, PostLike, User
from services import likes as like_service

LONG_CONTENT = (
    "This body is long enough to satisfy the minimum content length enforced "
    "by the post validation rules."
)


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def create_post(
    async_client: AsyncClient,
    headers: dict[str, str],
    title: str = "Likeable",
) -> dict[str, Any]:
    response = await async_client.post(
        "/api/v1/posts",
        json={"title": title, "summary": "A short summary of the post.", "content": LONG_CONTENT},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def seed_user(db_session: AsyncSession, email: str) -> User:
    user = User(name=email.split("@")[0], email=email, password_hash="not-a-real-hash")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def seed_post(
    db_session: AsyncSession,
    owner: User,
    *,
    title: str,
    available_at: datetime,
) -> Post:
    assert owner.id is not None
    post = Post(
        user_id=owner.id,
        title=title,
        summary="summary",
        content="content",
        available_at=available_at,
    )
    db_session.add(post)
    await db_session.commit()
    await db_session.refresh(post)
    return post


async def like_rows(db_session: AsyncSession, post_id: int, user_id: int) -> int:
    result = await db_session.execute(
        select(func.count(cast(ColumnElement[int], PostLike.id))).where(
            _eq(PostLike.post_id, post_id),
            _eq(PostLike.user_id, user_id),
        )
    )
    return int(result.scalar_one())


@pytest.mark.asyncio
async def test_toggle_alternates_and_keeps_single_row(
    async_client: AsyncClient,
    register_user,
    db_session: AsyncSession,
):
    author = await register_user("author")
    fan = await register_user("fan")
    post = await create_post(async_client, author["headers"])
    url = f"/api/v1/posts/{post['id']}/like"

    first = await async_client.post(url, headers=fan["headers"])
    assert first.json() == {"liked": True, "total_likes": 1}
    second = await async_client.post(url, headers=fan["headers"])
    assert second.json() == {"liked": False, "total_likes": 0}
    third = await async_client.post(url, headers=fan["headers"])
    assert third.json() == {"liked": True, "total_likes": 1}

    assert await like_rows(db_session, post["id"], fan["id"]) == 1

    fetched = await async_client.get(f"/api/v1/posts/{post['id']}")
    assert fetched.json()["total_likes"] == 1


@pytest.mark.asyncio
async def test_toggle_requires_authentication_and_existing_post(
    async_client: AsyncClient,
    register_user,
):
    fan = await register_user("fan")

    anonymous = await async_client.post("/api/v1/posts/1/like")
    assert anonymous.status_code == 401

    missing = await async_client.post("/api/v1/posts/987654/like", headers=fan["headers"])
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Post not found"


@pytest.mark.asyncio
async def test_total_likes_counts_each_liker_once(
    async_client: AsyncClient,
    register_user,
):
    author = await register_user("author")
    post = await create_post(async_client, author["headers"])
    other = await create_post(async_client, author["headers"], "Other")

    fans = [await register_user(f"fan{index}") for index in range(3)]
    for fan in fans:
        await async_client.post(f"/api/v1/posts/{post['id']}/like", headers=fan["headers"])
    await async_client.post(f"/api/v1/posts/{other['id']}/like", headers=fans[0]["headers"])
    await async_client.post(f"/api/v1/posts/{post['id']}/like", headers=fans[2]["headers"])

    listing = await async_client.get("/api/v1/posts")
    totals = {item["id"]: item["total_likes"] for item in listing.json()["items"]}
    assert totals == {post["id"]: 2, other["id"]: 1}
    assert listing.json()["pagination"]["total"] == 2

    count = await async_client.get(f"/api/v1/posts/{post['id']}/likes/count")
    assert count.json() == {"total": 2}
    with_deleted = await async_client.get(
        f"/api/v1/posts/{post['id']}/likes/count", params={"include_deleted": "true"}
    )
    assert with_deleted.json() == {"total": 3}


@pytest.mark.asyncio
async def test_liked_status_and_listings(async_client: AsyncClient, register_user):
    author = await register_user("author")
    fan = await register_user("fan")
    post = await create_post(async_client, author["headers"], "Listed")

    before = await async_client.get(f"/api/v1/posts/{post['id']}/liked", headers=fan["headers"])
    assert before.json() == {"liked": False}

    await async_client.post(f"/api/v1/posts/{post['id']}/like", headers=fan["headers"])
    after = await async_client.get(f"/api/v1/posts/{post['id']}/liked", headers=fan["headers"])
    assert after.json() == {"liked": True}

    post_likes = await async_client.get(f"/api/v1/posts/{post['id']}/likes")
    assert post_likes.status_code == 200
    items = post_likes.json()["items"]
    assert len(items) == 1
    assert items[0]["user"] == {"id": fan["id"], "name": fan["payload"]["name"]}
    assert items[0]["is_active"] is True

    user_likes = await async_client.get(f"/api/v1/users/{fan['id']}/likes")
    assert user_likes.status_code == 200
    liked_post = user_likes.json()["items"][0]["post"]
    assert liked_post["id"] == post["id"]
    assert liked_post["author"] == {"id": author["id"], "name": author["payload"]["name"]}

    user_count = await async_client.get(f"/api/v1/users/{fan['id']}/likes/count")
    assert user_count.json() == {"total": 1}

    missing_post = await async_client.get("/api/v1/posts/999999/likes")
    assert missing_post.status_code == 404
    missing_user = await async_client.get("/api/v1/users/999999/likes")
    assert missing_user.status_code == 404


@pytest.mark.asyncio
async def test_scheduled_post_likes_hidden_from_other_users(
    async_client: AsyncClient,
    register_user,
):
    author = await register_user("author")
    fan = await register_user("fan")
    available_at = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()
    response = await async_client.post(
        "/api/v1/posts",
        json={
            "title": "Coming soon",
            "summary": "A short summary of the post.",
            "content": LONG_CONTENT,
            "available_at": available_at,
        },
        headers=author["headers"],
    )
    assert response.status_code == 201, response.text
    post_id = response.json()["id"]

    toggle = await async_client.post(f"/api/v1/posts/{post_id}/like", headers=fan["headers"])
    assert toggle.status_code == 404
    assert toggle.json()["detail"] == "Post not found"
    for path in (f"/api/v1/posts/{post_id}/likes", f"/api/v1/posts/{post_id}/likes/count"):
        assert (await async_client.get(path)).status_code == 404
        assert (await async_client.get(path, headers=fan["headers"])).status_code == 404
    liked = await async_client.get(f"/api/v1/posts/{post_id}/liked", headers=fan["headers"])
    assert liked.status_code == 404

    own = await async_client.post(f"/api/v1/posts/{post_id}/like", headers=author["headers"])
    assert own.json() == {"liked": True, "total_likes": 1}
    count = await async_client.get(
        f"/api/v1/posts/{post_id}/likes/count", headers=author["headers"]
    )
    assert count.json() == {"total": 1}
    listing = await async_client.get(f"/api/v1/posts/{post_id}/likes", headers=author["headers"])
    assert [item["user"]["id"] for item in listing.json()["items"]] == [author["id"]]


@pytest.mark.asyncio
async def test_remove_like_requires_creator(
    async_client: AsyncClient,
    register_user,
    db_session: AsyncSession,
):
    author = await register_user("author")
    fan = await register_user("fan")
    post = await create_post(async_client, author["headers"])
    await async_client.post(f"/api/v1/posts/{post['id']}/like", headers=fan["headers"])

    result = await db_session.execute(
        select(PostLike).where(_eq(PostLike.post_id, post["id"]))
    )
    like = result.scalar_one()

    forbidden = await async_client.delete(f"/api/v1/likes/{like.id}", headers=author["headers"])
    assert forbidden.status_code == 403

    missing = await async_client.delete("/api/v1/likes/999999", headers=fan["headers"])
    assert missing.status_code == 404

    removed = await async_client.delete(f"/api/v1/likes/{like.id}", headers=fan["headers"])
    assert removed.status_code == 200
    again = await async_client.delete(f"/api/v1/likes/{like.id}", headers=fan["headers"])
    assert again.status_code == 200

    count = await async_client.get(f"/api/v1/posts/{post['id']}/likes/count")
    assert count.json() == {"total": 0}

    relike = await async_client.post(f"/api/v1/posts/{post['id']}/like", headers=fan["headers"])
    assert relike.json() == {"liked": True, "total_likes": 1}


@pytest.mark.asyncio
async def test_relike_refreshes_liked_at(db_session: AsyncSession):
    owner = await seed_user(db_session, "owner@example.com")
    fan = await seed_user(db_session, "fan@example.com")
    assert fan.id is not None
    post = await seed_post(
        db_session,
        owner,
        title="Timed",
        available_at=datetime(2025, 12, 1, tzinfo=timezone.utc),
    )
    assert post.id is not None

    first_moment = datetime(2026, 1, 1, tzinfo=timezone.utc)
    later_moment = datetime(2026, 2, 1, tzinfo=timezone.utc)
    await like_service.toggle_like(db_session, post.id, fan.id, now=first_moment)
    await like_service.toggle_like(db_session, post.id, fan.id, now=later_moment)

    result = await db_session.execute(select(PostLike).where(_eq(PostLike.post_id, post.id)))
    like = result.scalar_one()
    assert like.is_deleted is True
    assert like.liked_at.replace(tzinfo=timezone.utc) == first_moment

    reactivated = await like_service.toggle_like(db_session, post.id, fan.id, now=later_moment)
    assert reactivated.liked is True
    await db_session.refresh(like)
    assert like.liked_at.replace(tzinfo=timezone.utc) == later_moment


@pytest.mark.asyncio
async def test_toggle_missing_user_is_not_found(db_session: AsyncSession):
    owner = await seed_user(db_session, "owner@example.com")
    post = await seed_post(
        db_session,
        owner,
        title="Orphan like",
        available_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )
    assert post.id is not None
    with pytest.raises(NotFoundError):
        await like_service.toggle_like(db_session, post.id, 999999)


@pytest.mark.asyncio
async def test_concurrent_first_like_surfaces_conflict(
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
):
    owner = await seed_user(db_session, "owner@example.com")
    fan = await seed_user(db_session, "fan@example.com")
    assert fan.id is not None
    post = await seed_post(
        db_session,
        owner,
        title="Race",
        available_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )
    assert post.id is not None
    post_id, fan_id = post.id, fan.id
    db_session.add(
        PostLike(
            user_id=fan_id,
            post_id=post_id,
            liked_at=datetime.now(timezone.utc),
        )
    )
    await db_session.commit()

    async def _not_seen(*_args: Any, **_kwargs: Any) -> None:
        return None

    # Simulate the other request inserting between our read and our write.
    monkeypatch.setattr(like_service, "_find_like", _not_seen)
    with pytest.raises(ConflictError):
        await like_service.toggle_like(db_session, post_id, fan_id)

    assert await like_rows(db_session, post_id, fan_id) == 1


@pytest.mark.asyncio
async def test_most_liked_posts_ranking(db_session: AsyncSession):
    now = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
    owner = await seed_user(db_session, "owner@example.com")
    fans = [await seed_user(db_session, f"fan{index}@example.com") for index in range(3)]

    popular = await seed_post(db_session, owner, title="popular", available_at=now - timedelta(days=2))
    runner_up = await seed_post(db_session, owner, title="runner-up", available_at=now - timedelta(days=1))
    stale = await seed_post(db_session, owner, title="stale", available_at=now - timedelta(days=60))
    future = await seed_post(db_session, owner, title="future", available_at=now + timedelta(days=1))
    await seed_post(db_session, owner, title="unliked", available_at=now - timedelta(days=3))

    for fan in fans:
        await like_service.toggle_like(db_session, cast(int, popular.id), cast(int, fan.id), now=now)
        await like_service.toggle_like(db_session, cast(int, stale.id), cast(int, fan.id), now=now)
    await like_service.toggle_like(db_session, cast(int, future.id), cast(int, owner.id), now=now)
    await like_service.toggle_like(db_session, cast(int, runner_up.id), cast(int, fans[0].id), now=now)

    listing = await like_service.list_most_liked_posts(db_session, days=30, limit=10, now=now)
    assert [(view.title, view.total_likes) for view in listing.items] == [
        ("popular", 3),
        ("runner-up", 1),
    ]
    assert listing.page.total == 2
    assert listing.days == 30

    wider = await like_service.list_most_liked_posts(db_session, days=90, limit=1, now=now)
    assert [view.title for view in wider.items] == ["popular"]
    assert wider.page.total == 3
    assert wider.page.has_more is True
