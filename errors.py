"""
Error types and their HTTP mapping.

Every error reaching a client is rendered as {"message": ..., "code": ...}
with the matching status code.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class HttpError(Exception):
    """Base exception for errors returned to API clients."""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(HttpError):
    """Missing or invalid input fields."""
    status_code = 422


class SizeExceeded(ValidationError):
    """Uploaded file is larger than allowed."""
    pass


class AuthError(HttpError):
    """No usable credentials were supplied."""
    status_code = 401


class InvalidToken(AuthError):
    """Token is malformed or its signature does not verify."""
    status_code = 403


class TokenExpired(InvalidToken):
    """Token is past its expiry."""
    pass


class AuthorizationError(HttpError):
    """Authenticated user may not act on this resource."""
    status_code = 403


class NotFoundError(HttpError):
    status_code = 404


class BlobNotFound(NotFoundError):
    pass


class InternalError(HttpError):
    status_code = 500


def error_body(message: str, code: int) -> dict:
    return {"message": message, "code": code}


async def http_error_handler(request: Request, exc: HttpError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.status_code))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=422, content=error_body(message, 422))


async def starlette_http_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = f"Not Found - {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_body(message, exc.status_code))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error in {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=error_body("Something went wrong", 500))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HttpError, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_http_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
