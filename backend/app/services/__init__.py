from app.services.user_store import UserStore, normalize_email
from app.services.notifications import EmailNotifier
from app.services.accounts import AccountService, AuthResult, GuestResult

__all__ = [
    "UserStore",
    "normalize_email",
    "EmailNotifier",
    "AccountService",
    "AuthResult",
    "GuestResult",
]
