"""Domain exceptions and their HTTP mapping.

Services raise these; the handlers registered in ``app.main`` turn them into
``{"detail": ..., "code": ...}`` responses. Anything else that escapes a
handler is logged and reported as a generic 500.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    message: str = "An unexpected error occurred"
    error_code: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)


class BadRequestError(AppException):
    message = "Bad request"
    error_code = "bad_request"
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(AppException):
    message = "Authentication required"
    error_code = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppException):
    message = "Access forbidden"
    error_code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppException):
    message = "Resource not found"
    error_code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppException):
    message = "Resource conflict"
    error_code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class TooManyRequestsError(AppException):
    message = "Too many attempts. Try again in a few minutes."
    error_code = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class RedemptionRejectedError(AppException):
    """A code exists but its claim cannot transition to redeemed.

    Point-of-sale staff need to tell ``already_redeemed`` from ``expired``,
    so the reason travels in ``error_code``.
    """

    message = "Code cannot be redeemed"
    error_code = "redemption_rejected"
    status_code = status.HTTP_400_BAD_REQUEST


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(
        "app exception code=%s status=%s path=%s message=%s",
        exc.error_code,
        exc.status_code,
        request.url.path,
        exc.message,
    )
    content: dict[str, Any] = {"detail": exc.message, "code": exc.error_code}
    for key, value in exc.details.items():
        content.setdefault(key, value)
    return JSONResponse(status_code=exc.status_code, content=content)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled exception path=%s error_type=%s",
        request.url.path,
        type(exc).__name__,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
