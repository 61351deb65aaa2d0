"""
Standardized Error Handling for the YAAKE API.

Every error response uses the same envelope as successful responses:

    {"success": false, "message": "...", "code": "...", "errors": [...]}
"""

import logging
from typing import Any, Optional

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# Validator error types that carry their own API error code
VALIDATION_ERROR_CODES = {
    "invalid_role": "INVALID_ROLE",
}


# =============================================================================
# Custom Exceptions
# =============================================================================

class YaakeError(Exception):
    """Base exception for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "SERVER_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        errors: Optional[list[dict]] = None,
    ):
        self.message = message or self.default_message
        if error_code:
            self.error_code = error_code
        self.errors = errors
        super().__init__(self.message)


class ValidationFailedError(YaakeError):
    """Malformed input, reported with field-level detail."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_FAILED"
    default_message = "Validation failed"


class AlreadyExistsError(YaakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "ALREADY_EXISTS"
    default_message = "User with this email already exists"


class InvalidCredentialsError(YaakeError):
    """Same message for unknown email and wrong password."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class AuthenticationError(YaakeError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTH_REQUIRED"
    default_message = "Authentication required"


class ForbiddenError(YaakeError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_message = "Permission denied"


class InvalidRoleError(YaakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_ROLE"
    default_message = "Invalid role. Must be one of: applicant, recruiter, career_trainer"


class InvalidOrExpiredTokenError(YaakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_OR_EXPIRED_TOKEN"
    default_message = "Invalid or expired verification token"


class AlreadyVerifiedError(YaakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "ALREADY_VERIFIED"
    default_message = "Email is already verified"


class NotFoundError(YaakeError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    default_message = "User not found"


class NotImplementedFeatureError(YaakeError):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    error_code = "NOT_IMPLEMENTED"
    default_message = "This feature is not yet implemented"


class DuplicateKeyError(Exception):
    """Raised by the credential store when a unique index would be violated."""

    def __init__(self, field: str = "email"):
        self.field = field
        super().__init__(f"Duplicate value for unique field '{field}'")


# =============================================================================
# Response helpers
# =============================================================================

def error_body(
    message: str,
    code: str,
    errors: Optional[list[dict]] = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message, "code": code}
    if errors:
        body["errors"] = errors
    return body


def get_request_id(request: Request) -> Optional[str]:
    """Extract request ID from request."""
    return request.headers.get("X-Request-Id")


def _clean_validation_message(message: str) -> str:
    # Pydantic prefixes messages of ValueErrors raised by validators
    prefix = "Value error, "
    if message.startswith(prefix):
        return message[len(prefix):]
    return message


# =============================================================================
# Exception Handlers
# =============================================================================

async def yaake_error_handler(request: Request, exc: YaakeError) -> JSONResponse:
    """Handle domain exceptions."""
    logger.warning(
        "%s on %s %s: %s",
        exc.error_code,
        request.method,
        request.url.path,
        exc.message,
        extra={"error_code": exc.error_code, "path": request.url.path},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.error_code, exc.errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions (404 routes, 405 methods, ...)."""
    error_codes = {
        400: "BAD_REQUEST",
        401: "AUTH_REQUIRED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        429: "RATE_LIMIT_EXCEEDED",
        501: "NOT_IMPLEMENTED",
    }

    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"
    if exc.status_code == 404 and message == "Not Found":
        message = "Route not found"

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, error_codes.get(exc.status_code, "ERROR")),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic request validation errors as 400 with field detail."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", []) if part != "body"]
        errors.append({
            "field": ".".join(loc) or None,
            "msg": _clean_validation_message(error.get("msg", "")),
            "type": error.get("type", ""),
        })

    logger.info(
        "Validation error on %s: %d issues",
        request.url.path,
        len(errors),
    )

    message = "Validation failed"
    code = "VALIDATION_FAILED"
    if len(errors) == 1:
        message = errors[0]["msg"]
        code = VALIDATION_ERROR_CODES.get(errors[0]["type"], code)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(message, code, errors),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without exposing internals."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", "SERVER_ERROR"),
    )


# =============================================================================
# Setup Function
# =============================================================================

def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(YaakeError, yaake_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
