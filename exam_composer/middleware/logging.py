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


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs request/response information in structured JSON format.

    Logs include:
    - Request ID (UUID)
    - HTTP method and path
    - Status code
    - Processing time
    - Client IP
    - Draft id, when the path addresses an exam draft

    Security notes:
    - Does NOT log Authorization headers or bearer tokens
    - Does NOT log request/response bodies (draft contents stay out of logs)
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

        draft_id = _draft_id_from_path(request.url.path)
        if draft_id:
            log_data["draft_id"] = draft_id

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

        logger.info(json.dumps(log_data))

        # Add request ID to response headers for client reference
        response.headers["X-Request-ID"] = request_id

        return response


def _draft_id_from_path(path: str) -> str | None:
    """Return the draft id segment of /api/exam-drafts/{draft_id}/... paths."""
    prefix = "/api/exam-drafts/"
    if not path.startswith(prefix):
        return None
    segment = path[len(prefix):].split("/", 1)[0]
    return segment or None


def get_request_id(request: Request) -> str:
    """
    Get the request ID from the request state.

    Args:
        request: FastAPI request object

    Returns:
        Request ID string (UUID)
    """
    return getattr(request.state, "request_id", "unknown")
