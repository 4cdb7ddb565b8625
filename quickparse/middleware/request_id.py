"""Request ID middleware.

Assigns a unique request ID to each request and returns it in the X-Request-ID response header.
An incoming X-Request-ID (set by the calling frontend) is kept.
"""

import uuid
from collections.abc import Awaitable, Callable
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

MAX_REQUEST_ID_LENGTH = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that sets request.state.request_id and adds X-Request-ID to response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        incoming = request.headers.get("X-Request-ID", "").strip()
        if not incoming or len(incoming) > MAX_REQUEST_ID_LENGTH:
            incoming = str(uuid.uuid4())
        request.state.request_id = incoming
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = incoming
        return response
