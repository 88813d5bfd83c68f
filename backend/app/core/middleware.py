"""
HTTP middleware: correlation ids, one access log line per request, 500 bodies
"""
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse
import structlog

from app.core.exceptions import ATSException

logger = structlog.get_logger()

CORRELATION_HEADER = "X-Correlation-ID"
_QUIET_PATHS = {"/health"}


def error_body(exc: ATSException) -> dict:
    """Uniform error payload for every ATSException"""
    return {
        "error": {
            "message": exc.message,
            "details": exc.details,
            "type": exc.__class__.__name__,
        }
    }


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id for the request and log its outcome"""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        start = time.perf_counter()
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id

        if request.url.path not in _QUIET_PATHS:
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
            )
        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Anything the ATSException handler did not render becomes a logged 500"""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception("unhandled_exception", method=request.method, path=request.url.path, error=str(e))
            return JSONResponse(
                status_code=500,
                content={"error": {"message": "Internal server error", "details": {}, "type": "InternalServerError"}},
            )
