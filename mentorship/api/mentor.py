"""Mentor actions on a student: direct messages and research roadmaps."""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import require_mentor
from database import get_db
from mentorship.api.dependencies import get_roadmap_llm, get_storage_service
from mentorship.exceptions import ToolExecutionError
from mentorship.services.message_service import MessageService
from mentorship.services.roadmap_service import RoadmapService
from shared.models.entities import Roadmap, User
from shared.models.schemas import (
    GenerateRoadmapRequest,
    MentorMessageRequest,
    MessageResponse,
    RoadmapResponse,
)
from shared.utils.exceptions import BootcampException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/mentor/students", tags=["mentor"])


def _roadmap_response(roadmap: Roadmap) -> RoadmapResponse:
    return RoadmapResponse(
        id=roadmap.id,
        student_id=roadmap.student_id,
        topic=roadmap.topic,
        pdf_url=roadmap.pdf_url,
        accepted=roadmap.accepted,
        milestone_count=len((roadmap.content or {}).get("milestones") or []),
        created_at=roadmap.created_at,
    )


@router.post("/{student_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def send_message(
    student_id: str,
    request: MentorMessageRequest,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
):
    """A message from the mentor, visible to the student straight away."""
    try:
        message = MessageService(db).send_mentor_message(
            student_id,
            request.content,
            attachments=[a.model_dump() for a in request.attachments or []],
        )
    except BootcampException as e:
        raise e.to_http_exception()
    return MessageResponse.model_validate(message)


@router.post("/{student_id}/roadmap", response_model=RoadmapResponse, status_code=status.HTTP_201_CREATED)
def generate_roadmap(
    student_id: str,
    request: GenerateRoadmapRequest,
    mentor: User = Depends(require_mentor),
    db: DBSession = Depends(get_db),
    storage=Depends(get_storage_service),
    llm=Depends(get_roadmap_llm),
):
    """Generate a research roadmap PDF for the student. Slow: the model writes a long document."""
    service = RoadmapService(db, llm=llm, storage=storage)
    try:
        roadmap = service.generate(
            student_id,
            request.topic,
            duration_weeks=request.duration_weeks,
            custom_requirements=request.custom_requirements,
        )
    except BootcampException as e:
        raise e.to_http_exception()
    except ToolExecutionError as e:
        logger.error(f"Roadmap generation for {student_id} failed at {e.stage}: {e.reason}")
        raise HTTPException(status_code=502, detail=e.reason)
    return _roadmap_response(roadmap)


@router.post("/{student_id}/roadmap/accept", response_model=RoadmapResponse)
def accept_roadmap(student_id: str, mentor: User = Depends(require_mentor), db: DBSession = Depends(get_db)):
    try:
        roadmap = RoadmapService(db).accept(student_id)
    except BootcampException as e:
        raise e.to_http_exception()
    return _roadmap_response(roadmap)
