"""Request correlation IDs for the storegate API.

The ID is taken from the caller's X-Request-Id header when usable, otherwise
generated, then stored on request.state and echoed on every response
(including error envelopes).
"""

import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-Id"
MAX_REQUEST_ID_LENGTH = 128


def _usable(candidate: str) -> bool:
    return 0 < len(candidate) <= MAX_REQUEST_ID_LENGTH and candidate.isprintable()


def request_id_for(request: Request) -> str:
    """Return the correlation ID for a request.

    Handlers that run outside the middleware (the catch-all 500 handler)
    still get an ID: the caller's header if usable, else a fresh uuid4.
    """
    assigned = getattr(request.state, "request_id", None)
    if assigned:
        return str(assigned)

    incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return incoming if _usable(incoming) else str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign request.state.request_id and set the X-Request-Id response header."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request.state.request_id = request_id_for(request)

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response
