"""Auth API endpoints: login."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session as DBSession

from database import get_db
from auth.services.auth_service import AuthService, AuthenticationError
from shared.models.schemas import LoginRequest, LoginResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, db: DBSession = Depends(get_db)):
    """
    Exchange email + password for a bearer token.

    An optional `role` restricts the login to one kind of account (the mentor
    dashboard sends `mentor`).
    """
    service = AuthService(db)
    try:
        result = service.login(request.email, request.password, request.role)
    except AuthenticationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return LoginResponse(**result)
