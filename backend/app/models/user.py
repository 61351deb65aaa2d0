from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.db.base import Base

ROLE_APPLICANT = "applicant"
ROLE_RECRUITER = "recruiter"
ROLE_CAREER_TRAINER = "career_trainer"

VALID_ROLES = (ROLE_APPLICANT, ROLE_RECRUITER, ROLE_CAREER_TRAINER)


class User(Base):
    """User account for authentication, verification and guest demos."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)  # always lower-cased
    hashed_password = Column(String, nullable=False)
    full_name = Column(String)
    role = Column(String, nullable=False, default=ROLE_APPLICANT)  # see VALID_ROLES
    company_name = Column(String, index=True)  # recruiters only

    # Email verification
    is_verified = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String, unique=True, index=True, nullable=True)

    # Guest / demo accounts
    is_guest = Column(Boolean, nullable=False, default=False, index=True)
    guest_created_at = Column(DateTime, nullable=True)
    guest_original_role = Column(String, nullable=True)
    guest_role_switch_count = Column(Integer, nullable=False, default=0)
    guest_upgraded_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def account_state(self) -> str:
        if self.is_guest:
            return "guest"
        return "verified" if self.is_verified else "unverified"

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role} state={self.account_state}>"
