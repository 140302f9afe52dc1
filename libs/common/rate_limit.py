"""Rate limiting for the ZoyaBites API.

Limits are counted per signed-in principal (user or access-code grant) and per
client IP otherwise. ``RATE_LIMIT_STORAGE_URI`` points at Redis when several
API instances must share counters.
"""

from functools import lru_cache
from typing import Callable

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from libs.common.config import get_settings


def client_ip(request: Request) -> str:
    # First hop of X-Forwarded-For when behind the load balancer
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or get_remote_address(request)


def rate_limit_key(request: Request) -> str:
    """``principal:<sub>`` once ``get_current_user`` has run, else ``ip:<addr>``."""
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"principal:{user.user_id}"
    return f"ip:{client_ip(request)}"


@lru_cache
def get_limiter() -> Limiter:
    settings = get_settings()
    return Limiter(
        key_func=rate_limit_key,
        default_limits=[settings.RATE_LIMIT_DEFAULT],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = get_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Render 429s in the API's error envelope."""
    limit = exc.detail or "too many requests"
    return JSONResponse(
        status_code=429,
        content={"error": f"Rate limit exceeded ({limit})"},
        headers={"Retry-After": "60"},
    )


def auth_limit(func: Callable) -> Callable:
    """Login, registration and access-code exchange."""
    return limiter.limit(get_settings().RATE_LIMIT_AUTH)(func)


def payment_limit(func: Callable) -> Callable:
    """Checkout and payment verification."""
    return limiter.limit(get_settings().RATE_LIMIT_PAYMENT)(func)


def polling_limit(func: Callable) -> Callable:
    """Endpoints the storefront polls, such as order history."""
    return limiter.limit(get_settings().RATE_LIMIT_POLLING)(func)
