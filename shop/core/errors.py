"""Error taxonomy and the single place where errors become JSON envelopes."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, error: str | None = None, details: Any = None) -> None:
        self.error = error or self.default_message
        self.details = details
        super().__init__(self.error)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error, "code": self.code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_message = "Invalid data"


class InvalidCredentials(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class Conflict(AppError):
    # Duplicate unique fields are reported as 400, not 409.
    status_code = status.HTTP_400_BAD_REQUEST
    code = "conflict"
    default_message = "Resource already exists"


class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_message = "Authentication required"


class InvalidToken(Unauthenticated):
    code = "invalid_token"
    default_message = "Invalid token"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_message = "Admin access required"


class AccountDisabled(Forbidden):
    code = "account_disabled"
    default_message = "Account disabled"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class NotFoundOrUnauthorized(NotFound):
    code = "not_found_or_unauthorized"
    default_message = "Not found or unauthorized"


class InternalError(AppError):
    def __init__(self, error: str | None = None, details: Any = None) -> None:
        super().__init__(error, details if details is not None else "unexpected error")


def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("[ERROR] %s %s failed: %s (%s)", request.method, request.url.path, exc.error, exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return _app_error_handler(request, ValidationError("Invalid data", details=issues))


def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content: dict[str, Any] = {"error": str(exc.detail), "code": "http_error"}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[ERROR] Unhandled error on %s %s", request.method, request.url.path)
    return _app_error_handler(request, InternalError("Internal server error", details=str(exc)))


def install_error_handlers(app: FastAPI) -> None:
    """Register the envelope handlers on an application."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
