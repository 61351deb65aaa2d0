"""
Account lifecycle: registration, verification, login and guest accounts.

States per account::

    register ─────────────► unverified ──verify_email──► verified
    guest_register ───────► guest ──switch_role──► guest
    guest ──upgrade_guest──► unverified (real email must be verified again)

Input shape (email format, password strength, confirmation) is validated by
the request schemas before these methods run; the service enforces the
business rules and talks to the store, the token issuer and the notifier.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from app.core.errors import (
    AlreadyExistsError,
    AlreadyVerifiedError,
    DuplicateKeyError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    InvalidRoleError,
    NotFoundError,
)
from app.core.security import (
    create_access_token,
    dummy_verify_password,
    generate_verification_token,
    get_password_hash,
    verify_password,
)
from app.models import ROLE_APPLICANT, ROLE_RECRUITER, VALID_ROLES, User
from app.services.notifications import EmailNotifier
from app.services.user_store import UserStore, normalize_email

GUEST_EMAIL_DOMAIN = "demo.yaake.com"
# Guest credentials are shown to the user and meant to be thrown away
GUEST_PASSWORD = "Guest2024!"
DEMO_COMPANY_NAME = "Demo Company"


@dataclass
class AuthResult:
    user: User
    token: str
    email_sent: Optional[bool] = None


@dataclass
class GuestResult:
    user: User
    token: str
    credentials: dict[str, str] = field(default_factory=dict)


def generate_guest_email() -> str:
    timestamp = int(time.time() * 1000)
    return f"guest-{timestamp}-{secrets.token_hex(4)}@{GUEST_EMAIL_DOMAIN}"


def default_guest_name(role: str) -> str:
    return f"Demo {role[:1].upper()}{role[1:]}"


class AccountService:
    """Orchestrates the account lifecycle over the credential store."""

    def __init__(
        self,
        store: UserStore,
        notifier: EmailNotifier,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Full accounts
    # ------------------------------------------------------------------

    def register(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        role: Optional[str] = None,
        company_name: Optional[str] = None,
    ) -> AuthResult:
        user_role = role or ROLE_APPLICANT
        if user_role not in VALID_ROLES:
            raise InvalidRoleError()

        if self.store.find_by_email(email):
            raise AlreadyExistsError()

        try:
            user = self.store.create(
                email=email,
                hashed_password=get_password_hash(password),
                full_name=name,
                role=user_role,
                company_name=company_name,
                is_verified=False,
                verification_token=generate_verification_token(),
            )
        except DuplicateKeyError as exc:
            raise AlreadyExistsError() from exc

        email_sent = self._send_verification(user)
        self.logger.info(
            "User registered",
            extra={"user_id": user.id, "role": user.role, "email_sent": email_sent},
        )
        return AuthResult(user=user, token=create_access_token(user.id), email_sent=email_sent)

    def login(self, email: str, password: str) -> AuthResult:
        user = self.store.find_by_email(email)
        if user is None:
            dummy_verify_password()
            raise InvalidCredentialsError()

        if not verify_password(password, user.hashed_password):
            raise InvalidCredentialsError()

        self.logger.info("User logged in", extra={"user_id": user.id, "state": user.account_state})
        return AuthResult(user=user, token=create_access_token(user.id))

    def verify_email(self, token: str) -> User:
        user = self.store.find_by_verification_token(token)
        if user is None:
            raise InvalidOrExpiredTokenError()

        if not self.store.consume_verification_token(user, token):
            raise InvalidOrExpiredTokenError()

        self.logger.info("Email verified", extra={"user_id": user.id})
        return user

    def resend_verification(self, email: str) -> bool:
        user = self.store.find_by_email(email)
        if user is None:
            raise NotFoundError()
        if user.is_verified:
            raise AlreadyVerifiedError()

        self.store.update(user, verification_token=generate_verification_token())
        return self._send_verification(user)

    def get_profile(self, user_id: int) -> User:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return user

    # ------------------------------------------------------------------
    # Guest accounts
    # ------------------------------------------------------------------

    def guest_register(self, name: Optional[str] = None, role: Optional[str] = None) -> GuestResult:
        guest_role = role if role in VALID_ROLES else ROLE_APPLICANT
        if role and role != guest_role:
            self.logger.info("Unknown guest role %r replaced with %r", role, guest_role)

        guest_email = generate_guest_email()
        user = self.store.create(
            email=guest_email,
            hashed_password=get_password_hash(GUEST_PASSWORD),
            full_name=name or default_guest_name(guest_role),
            role=guest_role,
            company_name=DEMO_COMPANY_NAME if guest_role == ROLE_RECRUITER else None,
            is_verified=True,
            is_guest=True,
            guest_created_at=datetime.utcnow(),
            guest_original_role=guest_role,
            guest_role_switch_count=0,
        )

        self.logger.info(
            "Guest account created",
            extra={"user_id": user.id, "role": guest_role, "guest_name": user.full_name},
        )
        return GuestResult(
            user=user,
            token=create_access_token(user.id),
            credentials={"email": guest_email, "password": GUEST_PASSWORD},
        )

    def switch_role(self, user: User, new_role: Optional[str]) -> AuthResult:
        if not user.is_guest:
            raise ForbiddenError("Role switching is only available for guest accounts")
        if not new_role or new_role not in VALID_ROLES:
            raise InvalidRoleError()

        old_role = user.role
        company_name = None
        if new_role == ROLE_RECRUITER and not user.company_name:
            company_name = DEMO_COMPANY_NAME

        user = self.store.increment_role_switch(user, new_role, company_name=company_name)

        self.logger.info(
            "Guest role switched",
            extra={
                "user_id": user.id,
                "old_role": old_role,
                "new_role": new_role,
                "switch_count": user.guest_role_switch_count,
            },
        )
        return AuthResult(user=user, token=create_access_token(user.id))

    def upgrade_guest(self, user: User, email: str, password: str) -> AuthResult:
        if not user.is_guest:
            raise ForbiddenError("This endpoint is only for guest accounts")

        new_email = normalize_email(email)
        if new_email != user.email and self.store.find_by_email(new_email):
            raise AlreadyExistsError("Email already registered")

        try:
            user = self.store.update(
                user,
                email=new_email,
                hashed_password=get_password_hash(password),
                is_guest=False,
                is_verified=False,
                verification_token=generate_verification_token(),
                guest_upgraded_at=datetime.utcnow(),
            )
        except DuplicateKeyError as exc:
            raise AlreadyExistsError("Email already registered") from exc

        email_sent = self._send_verification(user)
        self.logger.info(
            "Guest account upgraded",
            extra={
                "user_id": user.id,
                "original_role": user.guest_original_role,
                "email_sent": email_sent,
            },
        )
        return AuthResult(user=user, token=create_access_token(user.id), email_sent=email_sent)

    # ------------------------------------------------------------------

    def _send_verification(self, user: User) -> bool:
        sent = self.notifier.send_verification_email(user.email, user.verification_token)
        if not sent:
            self.logger.warning("Verification email not sent", extra={"user_id": user.id})
        return sent
