"""Request logging middleware.

Each request gets an ``X-Request-ID`` (propagated from the caller when present)
that is bound to every log line emitted while it is handled.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

_QUIET_PATHS = {"/health", "/api/health"}
SLOW_REQUEST_MS = 2000


def _principal(request: Request):
    user = getattr(request.state, "user", None)
    return user.user_id if user is not None else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get("X-Request-ID"),
            path=request.url.path,
            method=request.method,
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request crashed",
                extra={"extra_fields": {"principal": _principal(request)}},
            )
            clear_request_context()
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers["X-Request-ID"] = request_id

        if request.url.path not in _QUIET_PATHS:
            fields = {
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "principal": _principal(request),
            }
            if response.status_code >= 500 or duration_ms > SLOW_REQUEST_MS:
                logger.warning("Request completed", extra={"extra_fields": fields})
            else:
                logger.info("Request completed", extra={"extra_fields": fields})

        clear_request_context()
        return response


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request logging middleware."""
    configure_logging()
    app.add_middleware(RequestLoggingMiddleware)
