from __future__ import annotations

from typing import Any

from fastapi import status


class ApiError(Exception):
    """Base for every failure the action endpoint reports in its envelope."""

    code = "DATABASE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None, meta: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.meta = meta
        super().__init__(self.message)


class BadRequestError(ApiError):
    code = "BAD_REQUEST"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class ValidationFailed(ApiError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class AuthenticationError(ApiError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(ApiError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient role"


class NotFoundError(ApiError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class DuplicateContactError(ApiError):
    code = "DUPLICATE_CONTACT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "A similar contact already exists"


class RateLimitExceeded(ApiError):
    code = "RATE_LIMITED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limit exceeded"


class ConfigError(ApiError):
    code = "CONFIG_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Service is not configured"


class StorageError(ApiError):
    code = "DATABASE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Unexpected storage error"
