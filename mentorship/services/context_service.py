"""
Context assembly for one agent turn.

Everything here is a read: building the system prompt and the history window
never writes to the database.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from mentorship.prompts.loader import PromptLoader
from mentorship.services.catalog_service import research_topics_summary, video_catalog_summary
from mentorship.services.memory_service import MemoryService, format_profile_for_context
from shared.models.domain import Attachment, MessageRole, Phase
from shared.models.entities import Roadmap, Student
from shared.repositories import ConversationRepository, MessageRepository, RoadmapRepository, StudentRepository
from shared.utils.constants import INLINE_DOCUMENT_TYPES, INLINE_IMAGE_TYPES, RECENT_DAILY_NOTES
from shared.utils.exceptions import StudentNotFoundException

logger = logging.getLogger(__name__)

_ROLE_MAP = {
    MessageRole.STUDENT.value: "user",
    MessageRole.AGENT.value: "assistant",
    MessageRole.MENTOR.value: "assistant",
}


@dataclass
class AssembledContext:
    student_id: str
    phase: str
    student_name: str
    system_prompt: str
    history: list[dict] = field(default_factory=list)


def _days_since(moment: Optional[datetime], now: datetime) -> Optional[int]:
    if not moment:
        return None
    return (now - moment).days


def phase_guidance(phase: str) -> str:
    return PromptLoader.format("phase2" if phase == Phase.PHASE2.value else "phase1")


def catalog_summary(phase: str) -> str:
    return research_topics_summary() if phase == Phase.PHASE2.value else video_catalog_summary()


def timeline_section(student: Student, now: datetime, target_days: int) -> str:
    lines = []
    enrolled = _days_since(student.enrollment_date, now)
    if enrolled is not None:
        lines.append(f"Days since enrollment: {enrolled}")

    if student.current_phase == Phase.PHASE2.value:
        in_phase = _days_since(student.phase2_start, now)
        if in_phase is not None:
            lines.append(f"Days in Phase II: {in_phase}")
    else:
        in_phase = _days_since(student.phase1_start, now)
        if in_phase is not None:
            lines.append(f"Days in Phase I: {in_phase}")
            remaining = target_days - in_phase
            if remaining > 0:
                lines.append(f"Days remaining in Phase I: {remaining}")
            else:
                lines.append(
                    f"Note: the student has passed the {target_days}-day Phase I target. "
                    "If they have covered most topics, check whether they feel ready to move on to Phase II."
                )

    return "\n".join(lines) or "No timeline data available."


def roadmap_section(roadmap: Roadmap, research_topic: Optional[str]) -> str:
    content = roadmap.content or {}
    milestones = content.get("milestones") or []
    if milestones:
        milestone_lines = "\n".join(
            f"{i}. {m.get('title', '')} ({m.get('weeks', '')}): {', '.join((m.get('objectives') or [])[:2])}"
            for i, m in enumerate(milestones, start=1)
        )
    else:
        milestone_lines = "No milestones defined"

    return (
        "STUDENT'S RESEARCH ROADMAP (ALWAYS REFER TO THIS):\n"
        f"Topic: {content.get('subtitle') or research_topic or roadmap.topic}\n"
        f"Duration: {content.get('title') or '10 weeks'}\n\n"
        f"Milestones:\n{milestone_lines}\n\n"
        "Current Focus: Help the student progress through their roadmap milestones. "
        "Reference specific milestones, deliverables, and deadlines when giving guidance."
    )


def document_section(attachments: list[Attachment]) -> str:
    """Describe the files attached to this turn. Images and PDFs are passed inline."""
    if not attachments:
        return ""
    lines = ["ATTACHED DOCUMENTS (Student has shared the following files for context):"]
    for attachment in attachments:
        if attachment.mime_type in INLINE_IMAGE_TYPES or attachment.mime_type in INLINE_DOCUMENT_TYPES:
            lines.append(f"- {attachment.filename} ({attachment.mime_type}, included in the message)")
        else:
            lines.append(
                f"- {attachment.filename} ({attachment.mime_type}, not readable here; "
                "ask the student to summarise it or share a PDF)"
            )
    lines.append("")
    lines.append("When the student asks about attached documents, refer to the content above.")
    return "\n".join(lines)


def merge_history(messages) -> list[dict]:
    """
    Map stored messages (oldest first) to model turns. System messages are
    dropped and consecutive turns of the same role are joined.
    """
    turns: list[dict] = []
    for message in messages:
        role = _ROLE_MAP.get(message.role)
        if role is None or not (message.content or "").strip():
            continue
        if turns and turns[-1]["role"] == role:
            turns[-1]["content"] += "\n\n" + message.content
        else:
            turns.append({"role": role, "content": message.content})
    return turns


class ContextService:
    """Builds the system prompt and history window for a student's turn."""

    def __init__(self, db: DBSession):
        self.db = db
        self.students = StudentRepository(db)
        self.conversations = ConversationRepository(db)
        self.messages = MessageRepository(db)
        self.roadmaps = RoadmapRepository(db)
        self.memory = MemoryService(db)

    def history(self, conversation_id: str, limit: int) -> list[dict]:
        recent = self.messages.list_recent(conversation_id, limit)
        return merge_history(reversed(recent))

    def build_system_prompt(
        self,
        student: Student,
        attachments: Optional[list[Attachment]] = None,
        now: Optional[datetime] = None,
    ) -> str:
        settings = get_settings()
        now = now or datetime.utcnow()
        phase = student.current_phase
        name = student.user.name if student.user else "Student"

        student_lines = [
            f"Student name: {name}",
            "Current phase: " + (
                "Phase II (Research Project)" if phase == Phase.PHASE2.value else "Phase I (Video Curriculum)"
            ),
        ]
        if phase == Phase.PHASE2.value:
            student_lines.append(f"Research topic: {student.research_topic or 'Not yet selected'}")
            if not student.research_topic:
                student_lines.append("They need help selecting a research topic first.")

        sections = [
            PromptLoader.format(
                "persona",
                mentor_name=settings.mentor_name,
                program_name=settings.program_name,
                support_email=settings.support_email,
            ),
            "CURRENT STUDENT:\n" + "\n".join(student_lines),
            "TIMELINE STATUS:\n" + timeline_section(student, now, settings.phase1_target_days),
        ]

        memory_lines = format_profile_for_context(self.memory.get_profile(student.id))
        notes = self.memory.recent_daily_notes(student.id, RECENT_DAILY_NOTES)
        if notes:
            memory_lines += "\nRecent notes:\n" + "\n".join(
                f"- {n.get('date', '')}: {n.get('note', '')}" for n in notes
            )
        sections.append("WHAT YOU REMEMBER ABOUT THIS STUDENT:\n" + memory_lines)

        if phase == Phase.PHASE2.value:
            roadmap = self.roadmaps.latest_accepted(student.id) or self.roadmaps.latest_for_student(student.id)
            if roadmap:
                sections.append(roadmap_section(roadmap, student.research_topic))

        documents = document_section(attachments or [])
        if documents:
            sections.append(documents)

        sections.append("AVAILABLE RESOURCES:\n" + catalog_summary(phase))
        sections.append("PHASE-SPECIFIC GUIDANCE:\n" + phase_guidance(phase))
        return "\n\n".join(sections)

    def assemble(
        self,
        student_id: str,
        attachments: Optional[list[Attachment]] = None,
        history_limit: Optional[int] = None,
    ) -> AssembledContext:
        """
        Raises:
            StudentNotFoundException: unknown student
        """
        student = self.students.get_by_id(student_id)
        if not student:
            raise StudentNotFoundException(student_id)

        limit = history_limit or get_settings().context_history_limit
        conversation = self.conversations.get_by_student(student_id)
        history = self.history(conversation.id, limit) if conversation else []

        return AssembledContext(
            student_id=student_id,
            phase=student.current_phase,
            student_name=student.user.name if student.user else "Student",
            system_prompt=self.build_system_prompt(student, attachments),
            history=history,
        )
