"""
Domain errors raised by services and the auth gate.

Each error carries the HTTP status it maps to and a message that is safe to
show to the client. ``main.py`` turns them into ``{"success": false, ...}``
responses.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, extra: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.extra = extra or {}
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class DuplicateResource(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class TokenMalformed(Unauthenticated):
    default_message = "Invalid token"


class TokenExpired(Unauthenticated):
    default_message = "Token expired, please login again"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class QuotaExceeded(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Daily API limit reached. Limit resets in 24 hours."


class Throttled(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests, please try again later."


class UpstreamFailure(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Failed to process AI request"
