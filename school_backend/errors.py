"""Error taxonomy and the FastAPI handlers that turn errors into responses.

Every error the API reports on purpose derives from :class:`ApiError` and
is rendered as ``{"error": message}`` with the error's status code. Anything
else that escapes a handler is unexpected and becomes a generic 500.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


class ValidationFailure(Enum):
    """Why a contact submission or logo upload was rejected."""
    MISSING_FIELD = "missing_field"
    INVALID_EMAIL = "invalid_email"
    MISSING_DATA = "missing_data"
    INVALID_FORMAT = "invalid_format"
    TOO_LARGE = "too_large"


class ApiError(Exception):
    """Base class for errors reported to the client as ``{"error": ...}``."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400

    def __init__(self, reason: ValidationFailure, message: str):
        super().__init__(message)
        self.reason = reason


class MalformedBody(ApiError):
    status_code = 400


class PayloadTooLarge(ApiError):
    status_code = 413


class ServiceUnavailable(ApiError):
    status_code = 503


class RateLimitExceeded(ApiError):
    """Raised by route dependencies when a rate policy rejects a request."""

    status_code = 429

    def __init__(self, policy_name: str, message: str, retry_after: int):
        super().__init__(message)
        self.policy_name = policy_name
        self.retry_after = retry_after


def error_response(message: str, status_code: int, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitExceeded):
        headers = {"Retry-After": str(exc.retry_after)}
        log.warning(
            "Rate limit '%s' exceeded for %s %s",
            exc.policy_name, request.method, request.url.path,
        )
    return error_response(exc.message, exc.status_code, headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors (404, 405) with the same ``error`` key."""
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_response(detail, exc.status_code, getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Terminal error stage: log the cause, answer a generic 500.

    The exception text is only revealed outside production.
    """
    log.error(
        "Server error on %s %s: %s", request.method, request.url.path, exc,
        exc_info=exc,
    )
    settings = getattr(request.app.state, "settings", None)
    production = settings is None or settings.is_production
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "Something went wrong" if production else str(exc),
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    # Route failures are caught inside the middleware stack; the Exception
    # handler only sees failures raised by middleware itself.
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
