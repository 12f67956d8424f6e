"""User data access layer."""
import logging
from typing import Optional
from uuid import uuid4
from sqlalchemy import func
from sqlalchemy.orm import Session as DBSession

from shared.models.entities import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user lookups and creation."""

    def __init__(self, db: DBSession):
        self.db = db

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive email lookup."""
        return (
            self.db.query(User)
            .filter(func.lower(User.email) == email.strip().lower())
            .first()
        )

    def create(
        self,
        email: str,
        name: str,
        role: str = "student",
        password_hash: Optional[str] = None,
        preferred_name: Optional[str] = None,
    ) -> User:
        """Add a user to the session (caller commits)."""
        user = User(
            id=str(uuid4()),
            email=email.strip().lower(),
            name=name,
            preferred_name=preferred_name,
            role=role,
            password_hash=password_hash,
        )
        self.db.add(user)
        self.db.flush()
        return user
