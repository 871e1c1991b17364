"""Post ownership, visibility and scheduling policy checks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, cast

from sqlalchemy import true
from sqlalchemy.sql import ColumnElement

from core.errors import AuthorizationError, ValidationError
from models import Post

ACCESS_DENIED_MESSAGE = "Access denied"


def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def one_year_after(moment: datetime) -> datetime:
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        # Feb 29 has no counterpart in the following year.
        return moment.replace(year=moment.year + 1, day=28)


def can_mutate(owner_id: int | None, caller_id: int | None) -> bool:
    """Only the owner of a resource may change or remove it."""
    if owner_id is None or caller_id is None:
        return False
    return owner_id == caller_id


def require_owner(owner_id: int | None, caller_id: int | None) -> None:
    if not can_mutate(owner_id, caller_id):
        raise AuthorizationError(ACCESS_DENIED_MESSAGE)


def is_listable(
    available_at: datetime,
    now: datetime,
    include_scheduled: bool = False,
) -> bool:
    """Return True when a post with ``available_at`` shows up in listings at ``now``."""
    if include_scheduled:
        return True
    return ensure_aware(available_at) <= ensure_aware(now)


def is_scheduled(available_at: datetime, now: datetime) -> bool:
    return not is_listable(available_at, now)


def build_listable_filter(
    *,
    now: datetime,
    include_scheduled: bool = False,
    available_at_column: Any = None,
) -> ColumnElement[bool]:
    """SQL equivalent of :func:`is_listable` so counts and pages agree."""
    if include_scheduled:
        return cast(ColumnElement[bool], true())
    column = available_at_column if available_at_column is not None else Post.available_at
    return cast(ColumnElement[bool], cast(Any, column) <= ensure_aware(now))


def validate_schedule_window(available_at: datetime, now: datetime) -> datetime:
    """Reschedule targets must be strictly in the future and at most one year ahead."""
    target = ensure_aware(available_at)
    current = ensure_aware(now)
    if target <= current:
        raise ValidationError("Availability date must be in the future")
    if target > one_year_after(current):
        raise ValidationError("Availability date cannot be more than one year ahead")
    return target


def validate_availability(available_at: datetime, now: datetime) -> datetime:
    """Publication dates given on create/update may be now, but never in the past."""
    target = ensure_aware(available_at)
    current = ensure_aware(now)
    if target < current:
        raise ValidationError("Availability date cannot be in the past")
    if target > one_year_after(current):
        raise ValidationError("Availability date cannot be more than one year ahead")
    return target


def visible_to(post: Post, *, viewer_id: int | None, now: datetime) -> bool:
    """Scheduled posts are only reachable by id for their owner."""
    return is_listable(
        post.available_at,
        now,
        include_scheduled=can_mutate(post.user_id, viewer_id),
    )


__all__ = [
    "ACCESS_DENIED_MESSAGE",
    "build_listable_filter",
    "can_mutate",
    "ensure_aware",
    "is_listable",
    "is_scheduled",
    "one_year_after",
    "require_owner",
    "utcnow",
    "validate_availability",
    "validate_schedule_window",
    "visible_to",
]
