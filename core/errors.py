"""Domain error taxonomy raised by services and mapped at the HTTP boundary."""

from __future__ import annotations

from fastapi import status


class AppError(Exception):
    """Base class for errors that carry a stable kind and HTTP status."""

    kind = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    kind = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class NotFoundError(AppError):
    kind = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class AuthorizationError(AppError):
    kind = "AUTHORIZATION_ERROR"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class ConflictError(AppError):
    kind = "CONFLICT_ERROR"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class AuthenticationError(AppError):
    kind = "AUTHENTICATION_ERROR"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class InvalidTokenError(AuthenticationError):
    default_message = "Invalid token"


class ExpiredTokenError(AuthenticationError):
    default_message = "Token expired"


__all__ = [
    "AppError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ConflictError",
    "AuthenticationError",
    "InvalidTokenError",
    "ExpiredTokenError",
]
