"""
Typed HTTP errors raised by the auth core, the access policy and the
moderation workflow. They are plain HTTPExceptions so routers and
dependencies raise them exactly like the built-in one.
"""
from typing import Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )


# ─── 401 ──────────────────────────────────────────────────────────────────────

class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class MalformedCredential(Unauthenticated):
    default_detail = "Invalid authorization header"


class TokenExpired(Unauthenticated):
    default_detail = "Token has expired. Please log in again"


class UnknownUser(Unauthenticated):
    default_detail = "User not found"


class AccountDisabled(Unauthenticated):
    default_detail = "Account is deactivated. Please contact support"


# ─── 4xx ──────────────────────────────────────────────────────────────────────

class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Resource not found"


class InvalidStatus(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid status"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"
