"""
Access token validation dependencies.

Usage:
    @router.get("/protected")
    def protected_endpoint(current_user: User = Depends(get_current_user)):
        return {"user_id": current_user.id}

    @router.post("/drafts/{draft_id}/approve")
    def approve(..., mentor: User = Depends(require_mentor)):
        ...
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session as DBSession

from auth.services.auth_service import AuthenticationError, decode_access_token
from database import get_db
from shared.models.domain import UserRole
from shared.models.entities import User
from shared.repositories import StudentRepository, UserRepository

logger = logging.getLogger("auth.middleware")

security = HTTPBearer(auto_error=False)

_STAFF_ROLES = (UserRole.MENTOR.value, UserRole.ADMIN.value)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: DBSession = Depends(get_db),
) -> User:
    """
    FastAPI dependency: validate the bearer token and return the User.
    Raises 401 if the token is missing or invalid.
    """
    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        claims = decode_access_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))

    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token: no sub claim")

    user = UserRepository(db).get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return user


def require_mentor(current_user: User = Depends(get_current_user)) -> User:
    """Mentors and admins only."""
    if current_user.role not in _STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Mentor access required")
    return current_user


def ensure_student_access(current_user: User, student_id: str, db: DBSession) -> None:
    """
    Staff may act for any student; a student only for their own record.
    Raises 403 otherwise.
    """
    if current_user.role in _STAFF_ROLES:
        return
    student = StudentRepository(db).get_by_user_id(current_user.id)
    if not student or student.id != student_id:
        logger.warning(f"User {current_user.id} denied access to student {student_id}")
        raise HTTPException(status_code=403, detail="Not allowed to access this student")


def require_student_access(
    student_id: str,
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> User:
    """Dependency form of `ensure_student_access` for routes with a `student_id` parameter."""
    ensure_student_access(current_user, student_id, db)
    return current_user
