"""Password hashing and bearer-token helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import settings
from .errors import ExpiredTokenError, InvalidTokenError

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


@dataclass(frozen=True)
class TokenSubject:
    """Identity claims carried by an access token."""

    id: int
    email: str
    name: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Unknown or malformed hash formats never authenticate.
        return False


def needs_rehash(password_hash: str) -> bool:
    return pwd_context.needs_update(password_hash)


def create_access_token(
    subject: TokenSubject,
    *,
    expires_delta: timedelta | None = None,
    now: datetime | None = None,
) -> str:
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, Any] = {
        "id": subject.id,
        "email": subject.email,
        "name": subject.name,
        "type": "access",
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    """Return the verified claims of ``token``."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError as exc:
        raise ExpiredTokenError() from exc
    except JWTError as exc:
        raise InvalidTokenError() from exc


def decode_access_token(token: str) -> TokenSubject:
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise InvalidTokenError()

    raw_id = payload.get("id")
    email = payload.get("email")
    name = payload.get("name")
    if isinstance(raw_id, bool) or not isinstance(raw_id, int):
        raise InvalidTokenError()
    if not isinstance(email, str) or not isinstance(name, str):
        raise InvalidTokenError()
    return TokenSubject(id=raw_id, email=email, name=name)


__all__ = [
    "TokenSubject",
    "hash_password",
    "verify_password",
    "needs_rehash",
    "create_access_token",
    "decode_token",
    "decode_access_token",
]
