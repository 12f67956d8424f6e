"""Engagement endpoints: inactive students, follow-up drafts, voice notes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import require_mentor
from database import get_db
from mentorship.api.dependencies import get_followup_llm, get_storage_service
from mentorship.services.engagement_service import EngagementService
from mentorship.services.student_service import StudentService
from shared.models.entities import User
from shared.models.schemas import (
    DraftResponse,
    FollowupRequest,
    InactiveStudentsResponse,
    MessageResponse,
    VoiceNoteRequest,
)
from shared.utils.constants import INACTIVE_DEFAULT_MIN_DAYS
from shared.utils.exceptions import BootcampException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/engagement", tags=["engagement"])


@router.get("/inactive-students", response_model=InactiveStudentsResponse)
def inactive_students(
    response: Response,
    min_days: int = INACTIVE_DEFAULT_MIN_DAYS,
    show_all: bool = False,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    """Students by days since their last message, most inactive first."""
    response.headers["Cache-Control"] = "no-store"
    return StudentService(db).inactive_students(min_days=min_days, show_all=show_all)


@router.post(
    "/students/{student_id}/followup",
    response_model=DraftResponse,
    status_code=status.HTTP_201_CREATED,
)
def generate_followup(
    student_id: str,
    request: Optional[FollowupRequest] = None,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
    llm=Depends(get_followup_llm),
):
    """Draft a follow-up for an inactive student. It waits for review like any agent reply."""
    try:
        draft = EngagementService(db, llm=llm).generate_followup_draft(
            student_id, request.days_since_last_message if request else None
        )
    except BootcampException as e:
        raise e.to_http_exception()
    return DraftResponse.model_validate(draft)


@router.post(
    "/students/{student_id}/voice-note",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def send_voice_note(
    student_id: str,
    request: Optional[VoiceNoteRequest] = None,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
    storage=Depends(get_storage_service),
):
    """Send the mentor's recorded voice note for the student's phase."""
    note_type = request.note_type if request else "motivation"
    try:
        message = EngagementService(db, storage=storage).send_voice_note(student_id, note_type)
    except BootcampException as e:
        raise e.to_http_exception()
    return MessageResponse.model_validate(message)
