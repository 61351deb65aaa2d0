from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

import sentry_sdk
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.csrf import CSRFMiddleware
from app.core.env_validation import validate_or_exit
from app.core.errors import setup_exception_handlers
from app.core.logging_config import setup_logging, shutdown_logging
from app.core.logging_middleware import RequestLoggingMiddleware
from app.core.rate_limit import limiter, rate_limit_exceeded_handler
from app.db.base import Base
from app.db.session import engine, get_db

# Import all models so SQLAlchemy can discover them for table creation
from app.models import User  # noqa: F401

# Import API router
from app.api.api import api_router

setup_logging(
    level=settings.LOG_LEVEL,
    json_format=settings.LOG_JSON,
    log_file=settings.LOG_FILE or None,
)
logger = logging.getLogger("yaake")

# Abort startup on missing or weak configuration
validate_or_exit(settings)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup, flush logs on shutdown."""
    Base.metadata.create_all(bind=engine)
    logger.info("%s backend started (%s)", settings.APP_NAME, settings.ENVIRONMENT)
    yield
    logger.info("%s backend shutting down", settings.APP_NAME)
    shutdown_logging()


app = FastAPI(
    title=settings.APP_NAME,
    description="Identity and session security for the YAAKE job application assistant",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
setup_exception_handlers(app)

# Middleware: the last one added is the outermost
app.add_middleware(CSRFMiddleware, settings=settings)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["X-Request-Id"],
)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {"success": True, "message": f"Welcome to {settings.APP_NAME} API"}


@app.get("/api/health", tags=["Health"])
def health_check(db: Session = Depends(get_db)):
    """Report API and database status."""
    health = {
        "success": True,
        "message": f"{settings.APP_NAME} Backend is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
        "services": {"api": "healthy", "database": "healthy"},
    }

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        health["success"] = False
        health["message"] = "Database health check failed"
        health["services"]["database"] = "unhealthy"
        return JSONResponse(status_code=503, content=health)

    return health


# Include API router with /api prefix
app.include_router(api_router, prefix="/api")
