"""
Rate Limiting Configuration for the YAAKE API.

Uses slowapi with a fixed-window counter keyed by client address. Only the
guest registration endpoint is limited; every other route is left alone
(no default limits).
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import settings
from app.core.errors import error_body

logger = logging.getLogger(__name__)

GUEST_REGISTER_MESSAGE = (
    "Too many guest accounts created from this IP. Please try again in 15 minutes."
)


def get_client_address(request: Request) -> str:
    """
    Client network address for rate limiting and logs.

    The first ``X-Forwarded-For`` hop is only trusted behind a known proxy.
    """
    if settings.TRUST_PROXY:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return get_remote_address(request) or "unknown"


limiter = Limiter(
    key_func=get_client_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
)


def limit_guest_register(func):
    """Decorator for the guest registration endpoint."""
    return limiter.limit(
        settings.GUEST_REGISTER_RATE_LIMIT,
        error_message=GUEST_REGISTER_MESSAGE,
    )(func)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return the standard envelope with retry information."""
    logger.warning(
        "Rate limit exceeded: %s on %s %s",
        get_client_address(request),
        request.method,
        request.url.path,
        extra={
            "client_ip": get_client_address(request),
            "user_agent": request.headers.get("User-Agent", "")[:100],
        },
    )

    retry_after = 15 * 60
    limit = getattr(exc, "limit", None)
    if limit is not None:
        retry_after = int(limit.limit.get_expiry())

    message = str(exc.detail) if exc.detail else GUEST_REGISTER_MESSAGE

    return JSONResponse(
        status_code=429,
        content=error_body(message, "RATE_LIMIT_EXCEEDED"),
        headers={"Retry-After": str(retry_after)},
    )
