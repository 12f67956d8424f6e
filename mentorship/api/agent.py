"""Debug views of what the mentor agent sees (mentor only)."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DBSession

from auth.middleware.auth_middleware import require_mentor
from database import get_db
from mentorship.services.context_service import ContextService
from mentorship.services.memory_service import MemoryService
from mentorship.tools import build_tool_registry
from shared.models.domain import Phase
from shared.models.entities import User
from shared.utils.exceptions import BootcampException

router = APIRouter(prefix="/agent", tags=["agent"])


@router.get("/context/{student_id}")
def get_context(student_id: str, mentor: User = Depends(require_mentor), db: DBSession = Depends(get_db)):
    """System prompt and history window the next turn would use. Read-only."""
    try:
        context = ContextService(db).assemble(student_id)
    except BootcampException as e:
        raise e.to_http_exception()
    return {
        "student_id": student_id,
        "phase": context.phase,
        "system_prompt": context.system_prompt,
        "history": context.history,
        "tools": build_tool_registry(context.phase).names,
    }


@router.get("/memory/{student_id}")
def get_memory(student_id: str, mentor: User = Depends(require_mentor), db: DBSession = Depends(get_db)):
    service = MemoryService(db)
    try:
        profile = service.get_profile(student_id)
    except BootcampException as e:
        raise e.to_http_exception()
    return {"student_id": student_id, "profile": profile, "memory": service.get_all(student_id)}


@router.get("/tools")
def list_tools(
    phase: Phase = Query(default=Phase.PHASE1),
    mentor: User = Depends(require_mentor),
):
    return {"phase": phase.value, "tools": build_tool_registry(phase.value).to_anthropic_tools()}
