"""Error envelope returned by every storegate API failure.

    {"code": "INVALID_PATH", "message": "...", "details": {...}, "request_id": "..."}

details never carries raw caller input (paths, keys, file names); path
errors expose the failed check and a digest of the input instead.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from storegate.api.middleware.request_id import REQUEST_ID_HEADER, request_id_for


class ErrorResponse(BaseModel):
    """Error envelope schema."""

    code: str
    message: str
    details: dict[str, Any] | None = None
    request_id: str


# Codes for statuses raised by the framework itself (routing, body limits)
_FRAMEWORK_STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    500: "INTERNAL_ERROR",
}


def code_for_status(status_code: int) -> str:
    return _FRAMEWORK_STATUS_CODES.get(status_code, f"HTTP_{status_code}")


def make_error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Render an ErrorResponse with the request's correlation ID.

    The ID is also set as the X-Request-Id header, since exception handlers
    may run outside RequestIdMiddleware.
    """
    envelope = ErrorResponse(
        code=code,
        message=message,
        details=details,
        request_id=request_id_for(request),
    )
    return JSONResponse(
        status_code=http_status,
        content=envelope.model_dump(),
        headers={REQUEST_ID_HEADER: envelope.request_id},
    )
