"""
Re-engaging inactive students.

Follow-ups are written by the model and go through the draft gate like any
other agent reply. Voice notes are recorded by the mentor, so they are sent
as released mentor messages.
"""
import json
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from mentorship.exceptions import LLMServiceError
from mentorship.prompts.loader import PromptLoader
from mentorship.services.draft_service import DraftService
from mentorship.services.message_service import MessageService
from mentorship.services.voice_note_service import VoiceNoteService
from mentorship.utils.text import strip_markdown_emphasis
from shared.models.domain import MessageRole, Phase
from shared.models.entities import Draft, Message, Student
from shared.repositories import ConversationRepository, MessageRepository, StudentRepository
from shared.services.llm_service import LLMService
from shared.services.storage_service import StorageService
from shared.utils.exceptions import (
    InvalidInputException,
    StudentNotFoundException,
    UpstreamUnavailableException,
)
from shared.utils.threads import with_subject

logger = logging.getLogger(__name__)

FOLLOWUP_SUBJECT = "Checking in"
_RECENT_FOR_FOLLOWUP = 5
_SNIPPET_CHARS = 200


def phase_description(student: Student) -> str:
    if student.current_phase == Phase.PHASE2.value:
        if student.research_topic:
            return f"Phase II, research project on {student.research_topic}"
        return "Phase II, research project, topic not selected yet"
    return "Phase I, video lectures on LLM fundamentals, prompt engineering, RAG and agents"


class EngagementService:

    def __init__(self, db: DBSession, llm: Optional[LLMService] = None, storage: Optional[StorageService] = None):
        self.db = db
        self.llm = llm
        self.storage = storage
        self.students = StudentRepository(db)
        self.conversations = ConversationRepository(db)
        self.messages = MessageRepository(db)

    def _student(self, student_id: str) -> Student:
        student = self.students.get_by_id(student_id)
        if not student:
            raise StudentNotFoundException(student_id)
        return student

    def _days_inactive(self, student: Student, conversation_id: Optional[str]) -> Optional[int]:
        if conversation_id:
            last = self.messages.latest_student_message_before(conversation_id, datetime.utcnow())
            if last:
                return (datetime.utcnow() - last.created_at).days
        if student.enrollment_date:
            return (datetime.utcnow() - student.enrollment_date).days
        return None

    def _student_context(self, student: Student, conversation_id: Optional[str]) -> str:
        if not conversation_id:
            return "No conversation yet."
        first_name = student.user.first_name if student.user else "Student"
        recent = list(reversed(self.messages.list_recent(conversation_id, _RECENT_FOR_FOLLOWUP)))
        if not recent:
            return "No conversation yet."
        mentor_name = get_settings().mentor_name
        return "Recent conversation:\n" + "\n".join(
            f"{first_name if m.role == MessageRole.STUDENT.value else mentor_name}: {m.content[:_SNIPPET_CHARS]}"
            for m in recent
        )

    def generate_followup_draft(self, student_id: str, days_inactive: Optional[int] = None) -> Draft:
        """
        Write a follow-up for an inactive student and queue it as a pending draft.

        Raises:
            StudentNotFoundException: unknown student
            UpstreamUnavailableException: the follow-up model failed
        """
        student = self._student(student_id)
        conversation = self.conversations.get_or_create(student_id)
        if days_inactive is None:
            days_inactive = self._days_inactive(student, conversation.id)

        settings = get_settings()
        prompt = PromptLoader.format(
            "followup",
            mentor_name=settings.mentor_name,
            student_name=student.user.first_name if student.user else "there",
            program_name=settings.program_name,
            days_inactive=days_inactive if days_inactive is not None else "several",
            student_context=self._student_context(student, conversation.id),
            phase_description=phase_description(student),
        )

        llm = self.llm or LLMService.from_settings(settings, settings.followup_provider, settings.followup_model)
        try:
            response = llm.call(prompt, json_mode=False)
        except LLMServiceError as e:
            raise UpstreamUnavailableException("Follow-up model", e) from e

        body = strip_markdown_emphasis(response.get("output_text") or "").strip()
        if not body:
            raise UpstreamUnavailableException("Follow-up model", ValueError("empty response"))

        draft = DraftService(self.db).create_draft(conversation.id, with_subject(FOLLOWUP_SUBJECT, body))
        logger.info(json.dumps({
            "step": "FOLLOWUP_DRAFTED",
            "student_id": student_id,
            "draft_id": draft.id,
            "days_inactive": days_inactive,
        }))
        return draft

    def send_voice_note(self, student_id: str, note_type: str = "motivation") -> Message:
        """
        Send the phase's recorded voice note as a released mentor message.

        Raises:
            InvalidInputException: blank note type
            StudentNotFoundException: unknown student
            VoiceNoteNotFoundException: no recorded asset
            UpstreamUnavailableException: upload failed
        """
        if not note_type or not note_type.strip():
            raise InvalidInputException("note_type")
        student = self._student(student_id)

        delivered = VoiceNoteService(self.db, self.storage).deliver(
            student_id, student.current_phase, note_type, reason="Sent by mentor"
        )
        return MessageService(self.db).send_mentor_message(
            student_id,
            delivered["message_text"],
            attachments=[delivered["attachment"]],
        )
