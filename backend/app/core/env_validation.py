"""
Environment Variable Validation.

Checks configuration before the application starts so that a missing or
weak secret aborts startup instead of failing at request time.
"""

import logging
import sys
from dataclasses import dataclass, field

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from app.core.config import Settings

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32

PLACEHOLDER_SECRETS = frozenset({
    "your-secret-key-change-in-production",
    "your-super-secret-jwt-key-change-this-in-production",
    "changeme",
    "secret",
})

DATABASE_SCHEMES = ("sqlite", "postgresql", "mysql", "mariadb")

PRODUCTION_REQUIRED = ("SENTRY_DSN", "FRONTEND_URL")
RECOMMENDED = ("SMTP_HOST", "SMTP_FROM")


@dataclass
class EnvironmentReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _is_blank(value) -> bool:
    return value is None or str(value).strip() == ""


def check_secret_key(secret: str) -> str | None:
    """Return an error message for an unusable signing secret, else None."""
    if _is_blank(secret):
        return "Missing required environment variable: SECRET_KEY"
    if secret in PLACEHOLDER_SECRETS:
        return "SECRET_KEY is set to a default example value. Change it to a secure random string"
    if len(secret) < MIN_SECRET_LENGTH:
        return (
            f"SECRET_KEY is too short ({len(secret)} chars). "
            f"Minimum {MIN_SECRET_LENGTH} characters required"
        )
    return None


def check_database_url(url: str) -> str | None:
    """Return an error message for an unusable database URL, else None."""
    if _is_blank(url):
        return "Missing required environment variable: DATABASE_URL"
    try:
        backend = make_url(url).get_backend_name()
    except ArgumentError:
        return "DATABASE_URL is not a valid database URL"
    if backend not in DATABASE_SCHEMES:
        return f"DATABASE_URL must start with one of: {', '.join(s + '://' for s in DATABASE_SCHEMES)}"
    return None


def validate_environment(settings: Settings) -> EnvironmentReport:
    report = EnvironmentReport()

    for error in (check_database_url(settings.DATABASE_URL), check_secret_key(settings.SECRET_KEY)):
        if error:
            report.errors.append(error)

    if settings.is_production:
        for name in PRODUCTION_REQUIRED:
            if _is_blank(getattr(settings, name)):
                report.errors.append(f"Missing required production environment variable: {name}")
        if not settings.HTTPS_ENABLED:
            report.warnings.append("HTTPS_ENABLED is not set to 'true' in production")

    for name in RECOMMENDED:
        if _is_blank(getattr(settings, name)):
            report.warnings.append(f"Recommended environment variable not set: {name}")

    return report


def validate_or_exit(settings: Settings) -> EnvironmentReport:
    """Validate configuration, exiting the process with status 1 on errors."""
    report = validate_environment(settings)

    for warning in report.warnings:
        logger.warning(warning)

    if not report.is_valid:
        for error in report.errors:
            logger.critical(error)
        logger.critical("Environment validation failed; exiting due to configuration errors")
        sys.exit(1)

    logger.info(
        "Environment validation passed (%s, %d warning(s))",
        settings.ENVIRONMENT,
        len(report.warnings),
    )
    return report
