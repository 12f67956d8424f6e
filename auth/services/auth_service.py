"""Auth service: password check and access token issue/verify."""

import logging
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import jwt, JWTError
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from shared.models.entities import User
from shared.repositories import StudentRepository, UserRepository

logger = logging.getLogger("auth.service")

# Cost factor of the hashes already stored for seeded accounts
_BCRYPT_ROUNDS = 10


class AuthenticationError(Exception):
    """Credentials were rejected."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


def hash_password(password: str) -> str:
    """Return a bcrypt hash (`$2b$10$...`). bcrypt only reads the first 72 bytes."""
    return bcrypt.hashpw(password.encode()[:72], bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode()


def verify_password(password: str, stored: Optional[str]) -> bool:
    """Check a password against a bcrypt hash. `$2a$` hashes from older seed data verify too."""
    if not stored:
        return False
    try:
        return bcrypt.checkpw(password.encode()[:72], stored.encode())
    except ValueError:
        logger.warning("Stored password hash is not a bcrypt hash")
        return False


def create_access_token(user: User, student_id: Optional[str] = None) -> str:
    settings = get_settings()
    now = datetime.utcnow()
    claims = {
        "sub": user.id,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expiry_minutes),
    }
    if student_id:
        claims["student_id"] = student_id
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiry and return the claims.

    Raises:
        AuthenticationError: token is malformed, forged or expired
    """
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(f"Invalid token: {e}")


class AuthService:
    """Email + password login for students, mentors and admins."""

    def __init__(self, db: DBSession):
        self.db = db
        self.user_repo = UserRepository(db)
        self.student_repo = StudentRepository(db)

    def login(self, email: str, password: str, role: Optional[str] = None) -> dict:
        """
        Check credentials and issue a token.

        Raises:
            AuthenticationError: 401 for bad credentials, 403 for a role mismatch
        """
        if not email or not password:
            raise AuthenticationError("Email and password are required", status_code=400)

        user = self.user_repo.get_by_email(email.strip())
        if not user or not verify_password(password, user.password_hash):
            logger.info(f"Failed login for {email}")
            raise AuthenticationError("Invalid email or password")

        if role and user.role != role:
            raise AuthenticationError(f"This account is not a {role} account", status_code=403)

        student_id = None
        if user.role == "student":
            student = self.student_repo.get_by_user_id(user.id)
            student_id = student.id if student else None

        logger.info(f"User {user.id} logged in as {user.role}")
        return {
            "access_token": create_access_token(user, student_id),
            "token_type": "bearer",
            "user_id": user.id,
            "name": user.name,
            "role": user.role,
            "student_id": student_id,
        }
