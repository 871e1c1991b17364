"""Request-scoped dependencies shared by the API routers."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core import AuthenticationError, AppError, TokenSubject, decode_access_token
from db.session import AsyncSessionMaker

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with AsyncSessionMaker() as session:
        yield session


def _subject_from_credentials(
    credentials: HTTPAuthorizationCredentials | None,
) -> TokenSubject:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")
    try:
        return decode_access_token(credentials.credentials)
    except AuthenticationError as exc:
        logger.warning("Rejected bearer token", extra={"reason": exc.message})
        raise


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenSubject:
    """Resolve the authenticated principal or fail with 401."""
    return _subject_from_credentials(credentials)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenSubject | None:
    """Like :func:`get_current_user`, but anonymous and invalid tokens yield ``None``."""
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except AppError:
        return None


__all__ = ["bearer_scheme", "get_current_user", "get_db", "get_optional_user"]
