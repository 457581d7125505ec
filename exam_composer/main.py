"""FastAPI application for the exam composer service."""

import json
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded  # type: ignore[import-not-found]

from exam_composer.config import get_settings
from exam_composer.middleware.logging import RequestLoggingMiddleware
from exam_composer.middleware.rate_limit import get_limiter, rate_limit_exceeded_handler
from exam_composer.middleware.request_id import RequestIDMiddleware
from exam_composer.routers import exam_drafts
from exam_composer.services.draft_store import get_draft_store
from exam_composer.services.form_variants import get_variant

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # This can be set via environment variable or build process

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan event handler for startup and shutdown."""
    # Startup: Validate environment configuration
    try:
        # This will raise ValidationError if required env vars are missing
        settings = get_settings()
        logging.getLogger().setLevel(settings.log_level.upper())

        # Log startup (without exposing secrets)
        logger.info(f"Starting Exam Composer API v{VERSION}")
        logger.info(f"Exam service: {settings.exam_service_url}")
        logger.info(f"Form variant: {settings.form_variant}")
        logger.info("Environment validation: OK")

    except Exception as e:
        logger.error(f"Startup validation failed: {e}")
        raise

    yield

    logger.info(f"Shutting down Exam Composer API ({len(get_draft_store())} open draft(s) discarded)")


app = FastAPI(
    title="Exam Composer API",
    description="Exam composition forms with type-conditional question validation",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state (required by slowapi)
limiter = get_limiter()
app.state.limiter = limiter

# Register custom rate limit exceeded handler
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Logging wraps everything; the request id is assigned before it runs
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to specific domains
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Health check endpoint that verifies the service is configured.

    The exam service itself is not probed: it is only ever called on submit.

    Returns:
        JSON response with overall status and individual check statuses.

    Status Codes:
        200: Configuration valid
        503: Configuration invalid
    """
    timestamp = datetime.now(UTC).isoformat()
    services: Dict[str, str] = {}
    overall_healthy = True

    try:
        settings = get_settings()
        services["exam_service"] = f"configured: {settings.exam_service_url}"
        get_variant(settings.form_variant)
        services["form_variant"] = settings.form_variant
    except Exception as e:
        services["configuration"] = f"unhealthy: {str(e)}"
        overall_healthy = False

    response_data: Dict[str, Any] = {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": timestamp,
        "open_drafts": len(get_draft_store()) if overall_healthy else 0,
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


app.include_router(exam_drafts.router)
