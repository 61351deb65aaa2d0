"""
Authentication API endpoints.

Registration, email verification, login, guest demo accounts, guest role
switching and guest upgrade. Every response uses the envelope
``{success, message, data, errors}``.
"""

import re
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from app.api.deps import (
    get_account_service,
    get_current_user,
    get_notifier,
    log_guest_activity,
    require_guest,
)
from app.core.errors import InvalidRoleError, NotImplementedFeatureError
from app.core.rate_limit import limit_guest_register
from app.models import VALID_ROLES, User
from app.services.accounts import AccountService
from app.services.notifications import EmailNotifier

router = APIRouter()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_CHARSET = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")
PASSWORD_MIN_LENGTH = 8


# ============== Validation Helpers ==============


def validate_email_address(value: str) -> str:
    """Validate email format and normalize to lower case."""
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def validate_password_strength(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not PASSWORD_CHARSET.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return value


def validate_confirmation(value: str, info: ValidationInfo) -> str:
    # password is absent from info.data when it already failed validation
    if "password" in info.data and value != info.data["password"]:
        raise ValueError("Passwords do not match")
    return value


# ============== Pydantic Schemas ==============


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmailForm(CamelModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email_address(v)


class CredentialsForm(EmailForm):
    """Email plus a new password typed twice."""

    password: str
    confirm_password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def check_confirmation(cls, v: str, info: ValidationInfo) -> str:
        return validate_confirmation(v, info)


class UserRegister(CredentialsForm):
    """Schema for user registration."""

    name: Optional[str] = None
    role: Optional[str] = None  # 'applicant' | 'recruiter' | 'career_trainer'
    company_name: Optional[str] = None

    @field_validator("role")
    @classmethod
    def check_role(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in VALID_ROLES:
            raise PydanticCustomError("invalid_role", InvalidRoleError.default_message)
        return v


class UserLogin(EmailForm):
    password: str

    @field_validator("password")
    @classmethod
    def password_required(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class ResendVerification(EmailForm):
    pass


class GuestRegister(CamelModel):
    """Guest sign-up; unknown roles fall back to 'applicant'."""

    name: Optional[str] = None
    role: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not 2 <= len(v) <= 100:
            raise ValueError("Name must be between 2 and 100 characters")
        return v


class SwitchRole(CamelModel):
    new_role: Optional[str] = None


class UpgradeGuest(CredentialsForm):
    pass


class GuestMetadataResponse(CamelModel):
    created_at: Optional[datetime] = None
    original_role: Optional[str] = None
    role_switch_count: int = 0
    upgraded_at: Optional[datetime] = None


class UserResponse(CamelModel):
    """Schema for user response (never includes password or tokens)."""

    id: int
    email: str
    name: Optional[str] = None
    role: str
    company_name: Optional[str] = None
    is_verified: bool
    is_guest: bool
    guest_metadata: GuestMetadataResponse
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.full_name,
            role=user.role,
            company_name=user.company_name,
            is_verified=bool(user.is_verified),
            is_guest=bool(user.is_guest),
            guest_metadata=GuestMetadataResponse(
                created_at=user.guest_created_at,
                original_role=user.guest_original_role,
                role_switch_count=user.guest_role_switch_count or 0,
                upgraded_at=user.guest_upgraded_at,
            ),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


# ============== Helper Functions ==============


def serialize_user(user: User) -> dict[str, Any]:
    return UserResponse.from_user(user).model_dump(by_alias=True, mode="json")


def envelope(
    message: Optional[str] = None,
    data: Optional[dict[str, Any]] = None,
    user: Optional[User] = None,
    **extra: Any,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    if user is not None and user.is_guest:
        body["isGuestMode"] = True
    return body


# ============== API Endpoints ==============
# Handlers that hash passwords, query the database or send mail are plain
# functions so FastAPI runs them in its threadpool.


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: UserRegister,
    service: AccountService = Depends(get_account_service),
):
    """
    Register a new account.

    The account starts unverified; a verification email is sent and a
    session token is returned straight away.
    """
    result = service.register(
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
        company_name=payload.company_name,
    )
    return envelope(
        "User registered successfully. Please check your email to verify your account.",
        {
            "user": serialize_user(result.user),
            "token": result.token,
            "emailSent": result.email_sent,
        },
    )


@router.post("/login")
def login(
    payload: UserLogin,
    service: AccountService = Depends(get_account_service),
):
    """Login with email and password and get a session token."""
    result = service.login(payload.email, payload.password)
    return envelope(
        "Login successful",
        {"user": serialize_user(result.user), "token": result.token},
        user=result.user,
    )


@router.get("/verify-email/{token}")
def verify_email(
    token: str,
    background_tasks: BackgroundTasks,
    service: AccountService = Depends(get_account_service),
    notifier: EmailNotifier = Depends(get_notifier),
):
    """Consume a verification token. The welcome email goes out after the response."""
    user = service.verify_email(token)
    background_tasks.add_task(notifier.send_welcome_email, user.email)
    return envelope("Email verified successfully")


@router.post("/resend-verification")
def resend_verification(
    payload: ResendVerification,
    service: AccountService = Depends(get_account_service),
):
    email_sent = service.resend_verification(payload.email)
    return envelope("Verification email sent successfully", emailSent=email_sent)


@router.get("/me", dependencies=[Depends(log_guest_activity("view_profile"))])
def get_me(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Get the current authenticated user's profile."""
    user = service.get_profile(current_user.id)
    return envelope(data={"user": serialize_user(user)}, user=user)


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards its copy."""
    return envelope(
        "Logout successful. Please remove the token from client storage.",
        user=current_user,
    )


# ============== Guest / Demo Accounts ==============


@router.post("/guest-register", status_code=status.HTTP_201_CREATED)
@limit_guest_register
def guest_register(
    request: Request,
    payload: Optional[GuestRegister] = None,
    service: AccountService = Depends(get_account_service),
):
    """
    Quick guest registration for demos.

    Returns the generated credentials so the guest can sign in again later.
    """
    payload = payload or GuestRegister()
    result = service.guest_register(name=payload.name, role=payload.role)
    return envelope(
        "Guest account created successfully! You're now in demo mode.",
        {
            "user": serialize_user(result.user),
            "token": result.token,
            "credentials": result.credentials,
            "isGuest": True,
        },
        user=result.user,
    )


@router.post("/switch-role", dependencies=[Depends(log_guest_activity("switch_role"))])
def switch_role(
    payload: SwitchRole,
    current_user: User = Depends(require_guest),
    service: AccountService = Depends(get_account_service),
):
    result = service.switch_role(current_user, payload.new_role)
    return envelope(
        f"Role switched to {result.user.role} successfully",
        {"user": serialize_user(result.user), "token": result.token},
        user=result.user,
    )


@router.post("/upgrade-guest", dependencies=[Depends(log_guest_activity("upgrade"))])
def upgrade_guest(
    payload: UpgradeGuest,
    current_user: User = Depends(require_guest),
    service: AccountService = Depends(get_account_service),
):
    """Convert a guest into a full account that must verify its real email."""
    result = service.upgrade_guest(current_user, payload.email, payload.password)
    return envelope(
        "Account upgraded successfully! Please check your email to verify your account.",
        {
            "user": serialize_user(result.user),
            "token": result.token,
            "emailSent": result.email_sent,
        },
    )


# ============== OAuth Placeholders ==============


@router.get("/google")
async def google_oauth():
    raise NotImplementedFeatureError("Google OAuth integration is not yet implemented.")


@router.get("/google/callback")
async def google_oauth_callback():
    raise NotImplementedFeatureError("Google OAuth callback is not yet implemented.")


@router.get("/github")
async def github_oauth():
    raise NotImplementedFeatureError("GitHub OAuth integration is not yet implemented.")


@router.get("/github/callback")
async def github_oauth_callback():
    raise NotImplementedFeatureError("GitHub OAuth callback is not yet implemented.")
