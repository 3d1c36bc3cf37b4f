"""Failure taxonomy and the JSON envelope rendering for API errors."""

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("taskmaster")


class AuthFailure(str, Enum):
    """Expected failure kinds, each mapped to an HTTP status."""

    VALIDATION = "validation_failure"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_LOCKED = "account_locked"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    AuthFailure.VALIDATION: 400,
    AuthFailure.DUPLICATE_EMAIL: 409,
    AuthFailure.INVALID_CREDENTIALS: 401,
    AuthFailure.ACCOUNT_LOCKED: 423,
    AuthFailure.UNAUTHENTICATED: 401,
    AuthFailure.INVALID_OR_EXPIRED_TOKEN: 400,
    AuthFailure.NOT_FOUND: 404,
    AuthFailure.INTERNAL: 500,
}

INTERNAL_ERROR_MESSAGE = "Something went wrong. Please try again later."


class AuthError(Exception):
    """Raised at the HTTP boundary for an expected failure."""

    def __init__(
        self,
        failure: AuthFailure,
        message: str,
        *,
        data: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.failure = failure
        self.message = message
        self.data = data
        self.headers = headers

    @property
    def status_code(self) -> int:
        return self.failure.status_code


class PasswordHashingError(Exception):
    """The hashing primitive failed; the calling operation must abort."""


class DuplicateEmailError(Exception):
    """A user with this email already exists."""


class InvalidOrExpiredTokenError(Exception):
    """Reset token is unknown, already used, or past its expiry."""


def envelope(success: bool, message: str, data: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": success, "message": message}
    if data is not None:
        body["data"] = data
    return body


def error_response(
    status_code: int,
    message: str,
    *,
    code: str,
    data: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = envelope(False, message, data)
    body["error"] = code
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _first_violation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    msg = first.get("msg", "Invalid value")
    return f"{field}: {msg}" if field else msg


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as a `{success, message, data?}` envelope."""

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s -> %s", request.method, request.url.path, exc.failure.value)
        return error_response(
            exc.status_code,
            exc.message,
            code=exc.failure.value,
            data=exc.data,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(400, _first_violation(exc), code=AuthFailure.VALIDATION.value)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(
            exc.status_code,
            str(exc.detail),
            code=f"http_{exc.status_code}",
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, INTERNAL_ERROR_MESSAGE, code=AuthFailure.INTERNAL.value)
