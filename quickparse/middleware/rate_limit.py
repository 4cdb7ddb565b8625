"""Per-client request limits for the quick-parse API (slowapi)."""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from quickparse.config import get_settings

DEFAULT_RETRY_AFTER = 60

# Parsing is CPU-only; group-id allocation reads the question store
RATE_LIMITS = {
    "parse": "60/minute",
    "group_ids": "30/minute",
}


def get_client_ip(request: Request) -> str:
    """
    Key requests by client address.

    X-Forwarded-For is only honoured when the direct peer is listed in
    TRUSTED_PROXIES; otherwise any client could pick its own bucket.
    """
    peer: str = get_remote_address(request)
    if peer not in get_settings().trusted_proxy_list:
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For")
    if not forwarded_for:
        return peer
    return forwarded_for.split(",")[0].strip()


limiter = Limiter(key_func=get_client_ip, default_limits=["200/minute"])


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After and X-RateLimit-* headers."""
    retry_after = getattr(exc, "retry_after", DEFAULT_RETRY_AFTER)

    headers = {
        "Retry-After": str(retry_after),
        "X-RateLimit-Remaining": "0",
    }
    limit = getattr(exc, "detail", None)
    if limit:
        headers["X-RateLimit-Limit"] = str(limit)

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded",
            "message": f"Too many requests. Please retry after {retry_after} seconds.",
            "retry_after": retry_after,
        },
        headers=headers,
    )
