"""Student directory and phase transition (mentor only)."""
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import require_mentor, require_student_access
from database import get_db
from mentorship.services.student_service import StudentService, student_to_dict
from shared.models.entities import User
from shared.models.schemas import StudentResponse, TransitionRequest
from shared.utils.exceptions import BootcampException

router = APIRouter(prefix="/students", tags=["students"])


@router.get("", response_model=List[StudentResponse])
def list_students(mentor: User = Depends(require_mentor), db: DBSession = Depends(get_db)):
    return [StudentResponse(**student_to_dict(s)) for s in StudentService(db).list_students()]


@router.get("/{student_id}", response_model=StudentResponse)
def get_student(
    student_id: str,
    current_user: User = Depends(require_student_access),
    db: DBSession = Depends(get_db),
):
    try:
        return StudentResponse(**student_to_dict(StudentService(db).get_student(student_id)))
    except BootcampException as e:
        raise e.to_http_exception()


@router.get("/{student_id}/progress")
def get_progress(
    student_id: str,
    current_user: User = Depends(require_student_access),
    db: DBSession = Depends(get_db),
):
    try:
        return StudentService(db).progress_summary(student_id)
    except BootcampException as e:
        raise e.to_http_exception()


@router.post("/{student_id}/transition", response_model=StudentResponse)
def transition_to_phase2(
    student_id: str,
    request: Optional[TransitionRequest] = None,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    """Mark Phase I complete. 409 if the student is already in Phase II."""
    try:
        student = StudentService(db).transition_to_phase2(
            student_id, request.research_topic if request else None
        )
    except BootcampException as e:
        raise e.to_http_exception()
    return StudentResponse(**student_to_dict(student))
