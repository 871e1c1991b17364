"""Core configuration, security and error primitives."""

from .config import get_settings, settings
from .errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExpiredTokenError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from .security import (
    TokenSubject,
    create_access_token,
    decode_access_token,
    decode_token,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "settings",
    "get_settings",
    "AppError",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "ExpiredTokenError",
    "InvalidTokenError",
    "NotFoundError",
    "ValidationError",
    "TokenSubject",
    "create_access_token",
    "decode_access_token",
    "decode_token",
    "hash_password",
    "needs_rehash",
    "verify_password",
]
