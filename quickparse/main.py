"""FastAPI application for the question quick-parse service."""

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]

from quickparse.config import get_settings
from quickparse.db.supabase_client import get_supabase_client
from quickparse.middleware.logging import RequestLoggingMiddleware, configure_logging
from quickparse.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from quickparse.middleware.request_id import RequestIDMiddleware
from quickparse.routers import group_ids, quick_parse

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # This can be set via environment variable or build process


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan event handler for startup and shutdown."""
    # Startup: Validate environment configuration
    try:
        settings = get_settings()
        configure_logging(settings.log_level)

        # Log startup (without exposing secrets)
        print(f"Starting Quick-Parse API v{VERSION}")
        print(f"Multiline statements: {settings.multiline_statements}")
        print(f"Max input chars: {settings.max_input_chars}")
        print(f"Supabase: {'configured' if settings.supabase_configured else 'not configured'}")
        print("Environment validation: OK")

    except Exception as e:
        print(f"Startup validation failed: {e}")
        raise

    yield

    print("Shutting down Quick-Parse API")


app = FastAPI(
    title="Quick-Parse API",
    description="Parse, format and validate QCM/QROC questions written in quick-parse notation",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state (required by slowapi)
app.state.limiter = limiter

# Register custom rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Logging middleware reads the request id set by RequestIDMiddleware (added last, runs first)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to the frontend domain
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Question-Count", "X-Diagnostic-Count", "X-Error-Count"],
)


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint.

    The parser has no external dependency; Supabase is only reported, and
    only counts against health when it is configured.

    Status Codes:
        200: Service healthy
        503: Supabase configured but unreachable
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    services: Dict[str, str] = {"parser": "healthy"}
    overall_healthy = True

    settings = get_settings()
    if not settings.supabase_configured:
        services["supabase"] = "not configured"
    else:
        try:
            supabase_client = get_supabase_client()
            response = await asyncio.to_thread(
                lambda: supabase_client.table(settings.questions_table)
                .select("id")
                .limit(1)
                .execute()
            )
            if response is not None:
                services["supabase"] = "healthy"
            else:
                services["supabase"] = "unhealthy: no response"
                overall_healthy = False
        except Exception as e:
            services["supabase"] = f"unhealthy: {str(e)}"
            overall_healthy = False

    response_data: Dict[str, Any] = {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": timestamp,
        "services": services,
    }

    if not overall_healthy:
        return Response(
            content=json.dumps(response_data),
            status_code=503,
            media_type="application/json",
        )

    return response_data


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """
    Get version information for the API.

    Returns:
        JSON with version number and commit hash.
    """
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
    }


app.include_router(quick_parse.router)
app.include_router(group_ids.router)
