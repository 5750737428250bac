"""API middleware for request logging."""
from __future__ import annotations
import time
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request.

    Unhandled errors become a generic 500 so no traceback reaches the client.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "request_error",
                method=request.method,
                path=request.url.path,
                error=str(e),
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return response
