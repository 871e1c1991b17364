"""Account registration, authentication and profile management."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, cast

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from core import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    TokenSubject,
    ValidationError,
    create_access_token,
    hash_password,
    needs_rehash,
    verify_password,
)
from db.errors import is_unique_violation
from models import Post, PostLike, User
from .aggregation import Page
from .posts import escape_like

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found"
EMAIL_IN_USE = "Email already in use"
INVALID_CREDENTIALS = "Invalid credentials"
MIN_PASSWORD_LENGTH = 6
COMMON_PASSWORDS = frozenset({"123456", "password", "123456789", "12345678", "12345"})
SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


@dataclass
class PasswordStrength:
    is_valid: bool = True
    score: int = 0
    feedback: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class UserFilters:
    search: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class UserListing:
    items: list[User]
    page: Page


@dataclass(frozen=True)
class AuthResult:
    user: User
    token: str


def normalize_email(value: str) -> str:
    return value.strip().lower()


def password_strength(password: str) -> PasswordStrength:
    """Score a candidate password.

    Only length and the common-password list make a password invalid; the
    character class checks add to the score and produce hints.
    """
    result = PasswordStrength()

    if len(password) < MIN_PASSWORD_LENGTH:
        result.is_valid = False
        result.feedback.append(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    else:
        result.score += 1
    if len(password) >= 8:
        result.score += 1

    checks = (
        (re.search(r"[a-z]", password), "Add lowercase letters"),
        (re.search(r"[A-Z]", password), "Add uppercase letters"),
        (re.search(r"\d", password), "Add numbers"),
        (SPECIAL_CHARACTERS.search(password), "Add special characters"),
    )
    for matched, hint in checks:
        if matched:
            result.score += 1
        else:
            result.feedback.append(hint)

    if password.lower() in COMMON_PASSWORDS:
        result.is_valid = False
        result.feedback.append("Password is too common")
    return result


def _require_strong_password(password: str, *, prefix: str = "Invalid password") -> None:
    strength = password_strength(password)
    if not strength.is_valid:
        raise ValidationError(f"{prefix}: {', '.join(strength.feedback)}")


def subject_for(user: User) -> TokenSubject:
    if user.id is None:
        raise ValueError("User record missing identifier")
    return TokenSubject(id=user.id, email=user.email, name=user.name)


async def _find_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(
        select(User).where(_eq(User.email, normalize_email(email))).limit(1)
    )
    return result.scalar_one_or_none()


async def _email_taken(
    session: AsyncSession,
    email: str,
    *,
    exclude_user_id: int | None = None,
) -> bool:
    user = await _find_by_email(session, email)
    return user is not None and user.id != exclude_user_id


async def _commit_user(session: AsyncSession, user: User, *, action: str) -> None:
    user_id = user.id
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if is_unique_violation(exc):
            raise ConflictError(EMAIL_IN_USE) from exc
        logger.exception("Failed to persist user", extra={"user_id": user_id, "action": action})
        raise
    except Exception:
        await session.rollback()
        logger.exception("Failed to persist user", extra={"user_id": user_id, "action": action})
        raise
    await session.refresh(user)


async def create_user(
    session: AsyncSession,
    *,
    name: str,
    email: str,
    password: str,
) -> User:
    normalized_email = normalize_email(email)
    if await _email_taken(session, normalized_email):
        raise ConflictError(EMAIL_IN_USE)
    _require_strong_password(password)

    user = User(
        name=name.strip(),
        email=normalized_email,
        password_hash=hash_password(password),
    )
    await _commit_user(session, user, action="create")
    logger.info("User created", extra={"user_id": user.id, "email": user.email})
    return user


async def authenticate_user(
    session: AsyncSession,
    *,
    email: str,
    password: str,
) -> AuthResult:
    user = await _find_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Authentication failed", extra={"email": normalize_email(email)})
        raise AuthenticationError(INVALID_CREDENTIALS)

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        await _commit_user(session, user, action="rehash")

    token = create_access_token(subject_for(user))
    logger.info("User authenticated", extra={"user_id": user.id})
    return AuthResult(user=user, token=token)


async def get_user_by_id(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user


def _user_conditions(filters: UserFilters) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    search = (filters.search or "").strip()
    if search:
        pattern = f"%{escape_like(search)}%"
        conditions.append(
            cast(
                ColumnElement[bool],
                or_(
                    cast(Any, User.name).ilike(pattern, escape="\\"),
                    cast(Any, User.email).ilike(pattern, escape="\\"),
                ),
            )
        )
    email = (filters.email or "").strip()
    if email:
        conditions.append(
            cast(Any, User.email).ilike(f"%{escape_like(email)}%", escape="\\")
        )
    return conditions


async def count_users(session: AsyncSession, filters: UserFilters | None = None) -> int:
    conditions = _user_conditions(filters or UserFilters())
    user_id_column = cast(ColumnElement[int], User.id)
    result = await session.execute(select(func.count(user_id_column)).where(*conditions))
    return int(result.scalar_one() or 0)


async def list_users(
    session: AsyncSession,
    filters: UserFilters,
    *,
    limit: int,
    offset: int = 0,
) -> UserListing:
    conditions = _user_conditions(filters)
    total = await count_users(session, filters)

    query = (
        select(User)
        .where(*conditions)
        .order_by(_desc(User.created_at), _desc(User.id))
    )
    if offset > 0:
        query = query.offset(offset)
    result = await session.execute(query.limit(limit))
    users = list(result.scalars().all())

    logger.debug(
        "Users listed",
        extra={"total": total, "returned": len(users), "limit": limit, "offset": offset},
    )
    return UserListing(items=users, page=Page(total=total, limit=limit, offset=offset))


async def update_user(
    session: AsyncSession,
    user_id: int,
    *,
    name: str | None = None,
    email: str | None = None,
    current_password: str | None = None,
    new_password: str | None = None,
) -> User:
    """Apply a profile change as a whole: every check runs before any field is set."""
    user = await get_user_by_id(session, user_id)

    new_name = name.strip() if name is not None else None
    new_email = normalize_email(email) if email is not None else None
    if new_email is not None and new_email != user.email:
        if await _email_taken(session, new_email, exclude_user_id=user_id):
            raise ConflictError(EMAIL_IN_USE)
    new_hash = None
    if current_password is not None or new_password is not None:
        if current_password is None or new_password is None:
            raise ValidationError("Both current and new password are required")
        new_hash = _checked_password_hash(user, current_password, new_password)

    applied: list[str] = []
    if new_name is not None and new_name != user.name:
        user.name = new_name
        applied.append("name")
    if new_email is not None and new_email != user.email:
        user.email = new_email
        applied.append("email")
    if new_hash is not None:
        user.password_hash = new_hash
        applied.append("password")

    if applied:
        await _commit_user(session, user, action="update")
        logger.info("User updated", extra={"user_id": user_id, "fields": applied})
    return user


def _checked_password_hash(user: User, current_password: str, new_password: str) -> str:
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect")
    _require_strong_password(new_password, prefix="Invalid new password")
    if current_password == new_password:
        raise ValidationError("New password must differ from the current password")
    return hash_password(new_password)


async def change_password(
    session: AsyncSession,
    user_id: int,
    *,
    current_password: str,
    new_password: str,
) -> None:
    user = await get_user_by_id(session, user_id)
    user.password_hash = _checked_password_hash(user, current_password, new_password)
    await _commit_user(session, user, action="change_password")
    logger.info("Password changed", extra={"user_id": user_id})


async def delete_user(session: AsyncSession, user_id: int) -> None:
    user = await get_user_by_id(session, user_id)

    owned_post_ids = select(cast(ColumnElement[int], Post.id)).where(
        _eq(Post.user_id, user_id)
    )
    like_post_id_column = cast(ColumnElement[int], PostLike.post_id)
    await session.execute(delete(PostLike).where(like_post_id_column.in_(owned_post_ids)))
    await session.execute(delete(PostLike).where(_eq(PostLike.user_id, user_id)))
    await session.execute(delete(Post).where(_eq(Post.user_id, user_id)))
    await session.delete(user)
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Failed to delete user", extra={"user_id": user_id})
        raise

    logger.info("User deleted", extra={"user_id": user_id})


__all__ = [
    "AuthResult",
    "EMAIL_IN_USE",
    "INVALID_CREDENTIALS",
    "PasswordStrength",
    "USER_NOT_FOUND",
    "UserFilters",
    "UserListing",
    "authenticate_user",
    "change_password",
    "count_users",
    "create_user",
    "delete_user",
    "get_user_by_id",
    "list_users",
    "normalize_email",
    "password_strength",
    "subject_for",
    "update_user",
]
