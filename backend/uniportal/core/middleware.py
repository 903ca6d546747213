"""
University Utility Portal - HTTP Middleware

Request correlation, access logging, response hardening and body size limits.
"""

import time
from typing import Callable, FrozenSet
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from uniportal.core.config import settings
from uniportal.core.exceptions import PayloadTooLargeError, error_response
from uniportal.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    generate_request_id,
)


REQUEST_ID_HEADER = "X-Request-ID"

# Probes and docs; hit constantly, never interesting
QUIET_PATHS: FrozenSet[str] = frozenset({
    "/",
    "/health",
    f"/api/{settings.API_VERSION}/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
})

SLOW_REQUEST_MS = 1000


def should_skip_logging(path: str) -> bool:
    return path in QUIET_PATHS


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id (taken from X-Request-ID when the client
    sends one) and writes one access line per request.

    The student id is filled in by get_current_user through request.state,
    so access lines for authenticated calls carry who made them.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        set_request_id(request_id)

        path = request.url.path
        started = time.perf_counter()

        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.error(
                    f"{request.method} {path} raised {type(exc).__name__} after {elapsed_ms:.2f}ms",
                    exc_info=True,
                    extra={
                        "event_type": "http_request_error",
                        "http_method": request.method,
                        "http_path": path,
                        "duration_ms": elapsed_ms,
                    },
                )
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers[REQUEST_ID_HEADER] = request_id
            response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

            if not should_skip_logging(path):
                logger.log_request(
                    request.method,
                    path,
                    response.status_code,
                    elapsed_ms,
                    student_id=getattr(request.state, "user_id", None),
                    client_ip=request.client.host if request.client else None,
                )
                if elapsed_ms > SLOW_REQUEST_MS:
                    logger.warning(f"Slow request: {request.method} {path} took {elapsed_ms:.2f}ms")

            return response
        finally:
            set_request_id("")
            set_user_id("")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Headers for a JSON-only API"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"

        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects bodies whose declared Content-Length is over max_size with 413"""

    def __init__(self, app: ASGIApp, max_size: int = 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")

        if declared.isdigit() and int(declared) > self.max_size:
            error = PayloadTooLargeError(int(declared), self.max_size)
            logger.warning(f"Rejected {request.method} {request.url.path}: {error.message}")
            return JSONResponse(status_code=error.status_code, content=error_response(error))

        return await call_next(request)


__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "RequestSizeLimitMiddleware",
    "should_skip_logging",
    "QUIET_PATHS",
]
