"""
CSRF Protection Middleware.

Double-submit cookie pattern for the single-page frontend:

1. Any request without an ``XSRF-TOKEN`` cookie gets a fresh random token
   set as a script-readable, SameSite=Strict cookie.
2. State-changing requests must echo the cookie value in the
   ``X-XSRF-Token`` (or ``X-CSRF-Token``) header.

No server-side token storage is needed; the browser holds both halves.
"""

import hmac
import logging
import secrets
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import Settings, settings as default_settings
from app.core.errors import error_body
from app.core.rate_limit import get_client_address

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "XSRF-TOKEN"
CSRF_HEADER_NAMES = ("x-xsrf-token", "x-csrf-token")
CSRF_COOKIE_MAX_AGE = 24 * 60 * 60
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def generate_csrf_token() -> str:
    """Generate a 256-bit CSRF token."""
    return secrets.token_hex(32)


def tokens_match(cookie_token: str, header_token: str) -> bool:
    """Constant-time comparison of the two token halves."""
    return hmac.compare_digest(cookie_token.encode("utf-8"), header_token.encode("utf-8"))


def get_header_token(request: Request) -> str | None:
    for name in CSRF_HEADER_NAMES:
        value = request.headers.get(name)
        if value:
            return value
    return None


class CSRFMiddleware(BaseHTTPMiddleware):
    """Issue and validate double-submit CSRF tokens."""

    def __init__(self, app, settings: Settings | None = None):
        super().__init__(app)
        self.settings = settings or default_settings
        if self.settings.DISABLE_CSRF and self.settings.is_production:
            logger.warning("DISABLE_CSRF is ignored in production; CSRF protection stays on")
        elif not self.settings.csrf_enabled:
            logger.warning("CSRF protection is DISABLED (DISABLE_CSRF=true)")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.settings.csrf_enabled:
            return await call_next(request)

        cookie_token = request.cookies.get(CSRF_COOKIE_NAME)

        response = None
        if request.method not in SAFE_METHODS:
            response = self._validate(request, cookie_token)
        if response is None:
            response = await call_next(request)

        if not cookie_token:
            self._set_cookie(response, generate_csrf_token())

        return response

    def _validate(self, request: Request, cookie_token: str | None) -> Response | None:
        header_token = get_header_token(request)

        if not cookie_token or not header_token:
            logger.warning(
                "CSRF validation failed: missing token",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "client_ip": get_client_address(request),
                    "has_cookie": bool(cookie_token),
                    "has_header": bool(header_token),
                },
            )
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content=error_body("CSRF token missing", "CSRF_TOKEN_MISSING"),
            )

        if not tokens_match(cookie_token, header_token):
            logger.warning(
                "CSRF validation failed: token mismatch",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "client_ip": get_client_address(request),
                },
            )
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content=error_body("Invalid CSRF token", "CSRF_TOKEN_INVALID"),
            )

        return None

    def _set_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            CSRF_COOKIE_NAME,
            token,
            max_age=CSRF_COOKIE_MAX_AGE,
            path="/",
            secure=self.settings.is_production,
            httponly=False,
            samesite="strict",
        )
        logger.debug("CSRF token issued: %s...", token[:8])
