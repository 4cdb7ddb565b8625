"""Logging middleware for request tracking and structured logging."""

import json
import logging
import sys
import time
import uuid
from typing import Any, Awaitable, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(message)s',  # We'll format as JSON ourselves
    stream=sys.stdout
)

logger = logging.getLogger(__name__)

# Response headers copied into the log line as integers
COUNT_HEADERS = {
    "X-Question-Count": "question_count",
    "X-Diagnostic-Count": "diagnostic_count",
    "X-Error-Count": "error_count",
}


def configure_logging(level: str) -> None:
    """Apply the configured log level to the root logger."""
    logging.getLogger().setLevel(level)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs request/response information in structured JSON format.

    Logs include:
    - Request ID
    - HTTP method and path
    - Status code
    - Processing time
    - Client IP
    - Parse outcome (question, diagnostic and error counts)

    Security notes:
    - Does NOT log pasted question text or request/response bodies
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Process request and log structured information."""
        # Use request ID from RequestIDMiddleware if present, otherwise generate
        request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        log_data: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "user_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as e:
            # Log error with full stack trace and contextual message
            processing_time_ms = (time.time() - start_time) * 1000
            error_log = {
                **log_data,
                "status_code": 500,
                "processing_time_ms": round(processing_time_ms, 2),
                "error": str(e),
                "error_type": type(e).__name__,
                "message": f"Request failed: {request.method} {request.url.path}",
            }
            logger.error(json.dumps(error_log), exc_info=True)
            raise

        processing_time_ms = (time.time() - start_time) * 1000

        log_data.update({
            "status_code": response.status_code,
            "processing_time_ms": round(processing_time_ms, 2),
        })

        for header, field in COUNT_HEADERS.items():
            if header in response.headers:
                try:
                    log_data[field] = int(response.headers[header])
                except (ValueError, TypeError):
                    pass  # Ignore malformed counts

        logger.info(json.dumps(log_data))

        # Add request ID to response headers for client reference
        response.headers["X-Request-ID"] = request_id

        return response


def get_request_id(request: Request) -> str:
    """
    Get the request ID from the request state.

    Args:
        request: FastAPI request object

    Returns:
        Request ID string
    """
    return getattr(request.state, "request_id", "unknown")
