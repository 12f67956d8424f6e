"""Student-facing message endpoints: submit, inbox and threads."""
import logging
from typing import Callable, List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import ensure_student_access, get_current_user, require_student_access
from database import get_db
from mentorship.api.dependencies import get_scheduler, get_storage_service
from mentorship.services.message_service import MessageService, UploadedFile
from shared.models.entities import User
from shared.models.schemas import MessageResponse, SubmitMessageResponse, ThreadResponse
from shared.utils.exceptions import BootcampException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])

NO_STORE = "no-store"


@router.post("", response_model=SubmitMessageResponse, status_code=status.HTTP_202_ACCEPTED)
async def submit_message(
    student_id: str = Form(...),
    content: str = Form(...),
    files: Optional[List[UploadFile]] = File(default=None),
    current_user: User = Depends(get_current_user),
    db: DBSession = Depends(get_db),
    storage=Depends(get_storage_service),
    schedule: Callable = Depends(get_scheduler),
):
    """
    Persist the student's message and return it immediately.

    Attachments are uploaded before the message is stored. The agent draft is
    generated in the background; `generation` says whether one was scheduled.
    """
    ensure_student_access(current_user, student_id, db)
    uploads = [
        UploadedFile(
            filename=f.filename or "file",
            data=await f.read(),
            content_type=f.content_type or "application/octet-stream",
        )
        for f in files or []
    ]

    try:
        service = MessageService(db, storage=storage, schedule=schedule)
        message, scheduled = service.submit_student_message(student_id, content, uploads)
    except BootcampException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error submitting message for student {student_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error submitting message: {str(e)}")

    return SubmitMessageResponse(
        message=MessageResponse.model_validate(message),
        generation="scheduled" if scheduled else "skipped",
    )


@router.get("", response_model=List[MessageResponse])
def list_messages(
    student_id: str,
    response: Response,
    current_user: User = Depends(require_student_access),
    db: DBSession = Depends(get_db),
):
    """Released messages for the student, oldest first. Never includes drafts."""
    response.headers["Cache-Control"] = NO_STORE
    try:
        messages = MessageService(db).list_visible_messages(student_id)
    except BootcampException as e:
        raise e.to_http_exception()
    return [MessageResponse.model_validate(m) for m in messages]


@router.get("/threads", response_model=List[ThreadResponse])
def list_threads(
    student_id: str,
    response: Response,
    current_user: User = Depends(require_student_access),
    db: DBSession = Depends(get_db),
):
    """Released messages grouped by subject, most recently active thread first."""
    response.headers["Cache-Control"] = NO_STORE
    try:
        threads = MessageService(db).list_threads(student_id)
    except BootcampException as e:
        raise e.to_http_exception()
    return [
        ThreadResponse(
            subject=t.subject,
            key=t.key,
            preview=t.preview,
            message_count=t.message_count,
            last_message_at=t.last_message_at,
            message_ids=t.message_ids,
        )
        for t in threads
    ]
