"""Mentor review endpoints: triage and draft lifecycle actions."""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import require_mentor
from database import get_db
from mentorship.services.draft_service import DraftService
from shared.models.entities import User
from shared.models.schemas import (
    ApproveDraftRequest,
    DraftResponse,
    EditDraftRequest,
    MessageResponse,
    RejectDraftRequest,
    ReleaseResponse,
    TriageDraftResponse,
    UpdateDraftRequest,
)
from shared.utils.exceptions import BootcampException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drafts", tags=["drafts"])


@router.get("", response_model=List[DraftResponse])
def list_student_drafts(
    student_id: str,
    response: Response,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    """Pending drafts for one student, newest first."""
    response.headers["Cache-Control"] = "no-store"
    drafts = DraftService(db).list_pending_for_student(student_id)
    return [DraftResponse.model_validate(d) for d in drafts]


@router.get("/all", response_model=List[TriageDraftResponse])
def list_all_drafts(
    response: Response,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    """Every pending draft with its student and the message that prompted it."""
    response.headers["Cache-Control"] = "no-store"
    return [TriageDraftResponse(**row) for row in DraftService(db).list_triage()]


@router.get("/{draft_id}", response_model=DraftResponse)
def get_draft(draft_id: str, mentor: User = Depends(require_mentor), db: DBSession = Depends(get_db)):
    try:
        return DraftResponse.model_validate(DraftService(db).get_draft(draft_id))
    except BootcampException as e:
        raise e.to_http_exception()


@router.post("/{draft_id}/approve", response_model=ReleaseResponse)
def approve_draft(
    draft_id: str,
    request: Optional[ApproveDraftRequest] = None,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    """Release the draft as written. Approving twice returns the same message."""
    try:
        message = DraftService(db).approve(
            draft_id, request.attachments if request else None, reviewer_id=mentor.id
        )
    except BootcampException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error approving draft {draft_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error approving draft: {str(e)}")
    return ReleaseResponse(draft_id=draft_id, message=MessageResponse.model_validate(message))


@router.post("/{draft_id}/edit", response_model=ReleaseResponse)
def edit_and_approve_draft(
    draft_id: str,
    request: EditDraftRequest,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    """Replace the content and release. The original Subject line is kept."""
    try:
        message = DraftService(db).edit_and_approve(
            draft_id, request.content, request.attachments, reviewer_id=mentor.id
        )
    except BootcampException as e:
        raise e.to_http_exception()
    except Exception as e:
        logger.error(f"Error editing draft {draft_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error editing draft: {str(e)}")
    return ReleaseResponse(draft_id=draft_id, message=MessageResponse.model_validate(message))


@router.post("/{draft_id}/reject")
def reject_draft(
    draft_id: str,
    request: Optional[RejectDraftRequest] = None,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    try:
        DraftService(db).reject(draft_id, request.reason if request else None, reviewer_id=mentor.id)
    except BootcampException as e:
        raise e.to_http_exception()
    return {"draft_id": draft_id, "status": "rejected"}


@router.patch("/{draft_id}", response_model=DraftResponse)
def update_draft(
    draft_id: str,
    request: UpdateDraftRequest,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    """Save an edit without releasing."""
    try:
        return DraftResponse.model_validate(DraftService(db).update_draft_content(draft_id, request.content))
    except BootcampException as e:
        raise e.to_http_exception()
