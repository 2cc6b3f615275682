"""Exception handlers that render failures as storegate error envelopes.

Registered by create_app():
- StoregateHttpError: raised by routes for request-level problems
  (unknown environment, unknown duplicate strategy)
- ObjectStorageError: naming and storage errors with a client-facing status
- HTTPException: framework errors such as unknown routes
- RequestValidationError: missing or malformed parameters
- Exception: everything else, as a generic 500
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from storegate.api.error_model import code_for_status, make_error_response
from storegate.storage.errors import (
    BucketNotFoundError,
    DuplicateObjectError,
    InvalidBucketNameError,
    InvalidFileNameError,
    InvalidPathError,
    ObjectNotFoundError,
    ObjectStorageError,
    ObjectTooLargeError,
)

logger = logging.getLogger(__name__)


class StoregateHttpError(Exception):
    """Route-level error carrying its own status and envelope code."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


# Resolved against the exception's MRO, so the most specific class wins
_CLIENT_ERRORS: dict[type[ObjectStorageError], tuple[int, str]] = {
    InvalidFileNameError: (400, "INVALID_FILE_NAME"),
    InvalidPathError: (400, "INVALID_PATH"),
    InvalidBucketNameError: (400, "INVALID_BUCKET_NAME"),
    BucketNotFoundError: (404, "BUCKET_NOT_FOUND"),
    ObjectNotFoundError: (404, "OBJECT_NOT_FOUND"),
    DuplicateObjectError: (409, "DUPLICATE_OBJECT"),
    ObjectTooLargeError: (413, "OBJECT_TOO_LARGE"),
}


def _client_error_for(exc: ObjectStorageError) -> tuple[int, str] | None:
    for cls in type(exc).__mro__:
        if cls in _CLIENT_ERRORS:
            return _CLIENT_ERRORS[cls]
    return None


def _safe_details(exc: ObjectStorageError) -> dict[str, Any] | None:
    if isinstance(exc, InvalidPathError):
        return {"check": exc.check, "input_digest": exc.input_digest}
    if isinstance(exc, ObjectTooLargeError):
        return {"size_bytes": exc.size_bytes, "limit_bytes": exc.limit_bytes}
    return {"bucket": exc.bucket} if exc.bucket else None


async def storegate_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, StoregateHttpError)
    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def object_storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map client-facing storage errors to 4xx.

    Backend and configuration failures are not the caller's fault and are
    handed to generic_exception_handler.
    """
    assert isinstance(exc, ObjectStorageError)

    mapped = _client_error_for(exc)
    if mapped is None:
        return await generic_exception_handler(request, exc)

    http_status, code = mapped
    logger.info("Rejected storage request: code=%s status=%d", code, http_status)
    return make_error_response(
        request,
        code=code,
        message=exc.message,
        http_status=http_status,
        details=_safe_details(exc),
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, HTTPException)
    return make_error_response(
        request,
        code=code_for_status(exc.status_code),
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
        http_status=exc.status_code,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report which fields failed, without echoing rejected values."""
    assert isinstance(exc, RequestValidationError)

    fields = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
            or "request",
            "message": err.get("msg", "Validation error"),
        }
        for err in exc.errors()
    ]
    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": fields} if fields else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and return a 500 that reveals nothing about it."""
    logger.exception("Unhandled %s while serving %s", type(exc).__name__, request.url.path)
    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
    )
