"""API error taxonomy and the handlers that render it."""

from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for failures that cross the HTTP boundary."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "All fields are required"


class ConflictError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Username or email already exists"


class AuthError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Please authenticate"


class InvalidTokenError(AuthError):
    default_message = "Invalid or expired token"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class PayloadTooLargeError(ApiError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    default_message = "Uploaded file is too large"


class InternalError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"


def error_envelope(
    status_code: int,
    message: str,
    errors: list[Any] | None = None,
) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "data": None,
        "message": message,
        "success": False,
        "errors": errors or [],
    }


def _error_response(
    status_code: int,
    message: str,
    errors: list[Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_envelope(status_code, message, errors),
        headers=headers,
    )


async def api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = cast(ApiError, exc)
    if error.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "Request failed: %s",
            error.message,
            extra={"path": request.url.path},
            exc_info=error.__cause__ or error,
        )
    return _error_response(error.status_code, error.message, error.errors)


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    validation_error = cast(RequestValidationError, exc)
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"][1:]),
            "message": error["msg"],
        }
        for error in validation_error.errors()
    ]
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request payload",
        errors,
    )


async def http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = cast(StarletteHTTPException, exc)
    return _error_response(
        error.status_code,
        str(error.detail),
        headers=getattr(error, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error while processing request",
        extra={"path": request.url.path},
        exc_info=exc,
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        InternalError.default_message,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Render every failure as the uniform JSON error envelope."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


__all__ = [
    "ApiError",
    "AuthError",
    "ConflictError",
    "InternalError",
    "InvalidTokenError",
    "NotFoundError",
    "PayloadTooLargeError",
    "ValidationError",
    "error_envelope",
    "setup_exception_handlers",
]
