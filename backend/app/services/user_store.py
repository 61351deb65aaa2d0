"""
Credential store over the ``users`` table.

All emails are lower-cased on the way in so uniqueness is
case-insensitive. Unique-index violations surface as ``DuplicateKeyError``;
any other database error propagates unchanged.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import DuplicateKeyError
from app.models import User


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    """Lookup and mutation of user accounts for the auth core."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def find_by_verification_token(self, token: str) -> Optional[User]:
        if not token:
            return None
        return self.db.query(User).filter(User.verification_token == token).first()

    def create(self, **attributes: Any) -> User:
        if attributes.get("email"):
            attributes["email"] = normalize_email(attributes["email"])
        user = User(**attributes)
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def update(self, user: User, **changes: Any) -> User:
        if changes.get("email"):
            changes["email"] = normalize_email(changes["email"])
        for key, value in changes.items():
            setattr(user, key, value)
        self._commit()
        self.db.refresh(user)
        return user

    def increment_role_switch(
        self,
        user: User,
        new_role: str,
        company_name: Optional[str] = None,
    ) -> User:
        """Change role and bump the switch counter in one UPDATE statement."""
        values: dict[Any, Any] = {
            User.role: new_role,
            User.guest_role_switch_count: User.guest_role_switch_count + 1,
            User.updated_at: datetime.utcnow(),
        }
        if company_name is not None:
            values[User.company_name] = company_name

        self.db.query(User).filter(User.id == user.id).update(values, synchronize_session=False)
        self._commit()
        self.db.refresh(user)
        return user

    def consume_verification_token(self, user: User, token: str) -> bool:
        """
        Mark the account verified and clear its token, only if the token is
        still the current one. Returns False when another request got there first.
        """
        updated = (
            self.db.query(User)
            .filter(User.id == user.id, User.verification_token == token)
            .update(
                {
                    User.is_verified: True,
                    User.verification_token: None,
                    User.updated_at: datetime.utcnow(),
                },
                synchronize_session=False,
            )
        )
        self._commit()
        self.db.refresh(user)
        return updated == 1

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            message = str(exc.orig).lower()
            if "email" in message:
                raise DuplicateKeyError("email") from exc
            if "verification_token" in message:
                raise DuplicateKeyError("verification_token") from exc
            raise
