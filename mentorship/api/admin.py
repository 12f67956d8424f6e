"""Admin endpoints: onboarding new students."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import require_mentor
from database import get_db
from mentorship.api.dependencies import get_email_service
from mentorship.services.student_service import StudentService
from shared.models.entities import User
from shared.models.schemas import OnboardRequest, OnboardResponse
from shared.utils.exceptions import BootcampException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/onboard", response_model=OnboardResponse, status_code=status.HTTP_201_CREATED)
def onboard_student(
    request: OnboardRequest,
    staff: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
    email_service=Depends(get_email_service),
):
    """
    Create a student account with its conversation and welcome message.
    `email_sent` is false when the welcome email could not be delivered.
    """
    try:
        result = StudentService(db).onboard(
            name=request.name,
            email=request.email,
            password=request.password,
            preferred_name=request.preferred_name,
            mentor_id=request.mentor_id or staff.id,
            send_welcome_email=request.send_welcome_email,
            email_service=email_service,
        )
    except BootcampException as e:
        raise e.to_http_exception()
    return OnboardResponse(**result)
