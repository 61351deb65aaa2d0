"""
Shared API dependencies: database session, services and the current user.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.errors import AuthenticationError, ForbiddenError
from app.core.rate_limit import get_client_address
from app.core.security import get_token_subject
from app.db.session import get_db
from app.models import User
from app.services.accounts import AccountService
from app.services.notifications import EmailNotifier
from app.services.user_store import UserStore

logger = logging.getLogger(__name__)

# Bearer token extraction; missing tokens are reported by get_current_user
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_notifier() -> EmailNotifier:
    return EmailNotifier()


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_account_service(
    store: UserStore = Depends(get_user_store),
    notifier: EmailNotifier = Depends(get_notifier),
) -> AccountService:
    return AccountService(store, notifier, logger=logging.getLogger("yaake.accounts"))


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    store: UserStore = Depends(get_user_store),
) -> User:
    """
    Resolve the bearer token to the stored account.

    Role and guest status always come from the database, never from the
    token, so tokens issued before a role switch carry no stale claims.
    """
    if not token:
        raise AuthenticationError()

    user_id = get_token_subject(token)
    if user_id is None:
        raise AuthenticationError("Invalid or expired token", error_code="INVALID_TOKEN")

    user = store.find_by_id(user_id)
    if user is None:
        raise AuthenticationError("Invalid or expired token", error_code="INVALID_TOKEN")

    return user


def require_guest(
    request: Request,
    user: User = Depends(get_current_user),
) -> User:
    """Only guest accounts may pass."""
    if not user.is_guest:
        logger.warning(
            "Non-guest user attempted to access guest-only endpoint",
            extra={"user_id": user.id, "path": request.url.path},
        )
        raise ForbiddenError(
            "This feature is only available for guest accounts",
            error_code="GUEST_ONLY",
        )
    return user


def log_guest_activity(action: str):
    """Create a dependency that records guest activity for demo analytics."""

    def record(request: Request, user: User = Depends(get_current_user)) -> None:
        if user.is_guest:
            logger.info(
                "Guest activity: %s",
                action,
                extra={
                    "user_id": user.id,
                    "role": user.role,
                    "action": action,
                    "client_ip": get_client_address(request),
                },
            )

    return record
