"""
Student-facing message flow: submission, the released inbox and threads,
plus direct mentor messages.

Submission persists the student's message and returns straight away; the
agent draft is produced in the background and never shows up here until a
mentor releases it.
"""
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from mentorship.services.background import generate_draft_job, run_in_background
from mentorship.utils.text import is_conversation_ending
from shared.models.domain import Attachment, MessageRole
from shared.models.entities import Message
from shared.repositories import ConversationRepository, MessageRepository, StudentRepository
from shared.services.storage_service import StorageService
from shared.utils.constants import ATTACHMENTS_PREFIX
from shared.utils.exceptions import (
    InvalidInputException,
    StudentNotFoundException,
    UpstreamUnavailableException,
)
from shared.utils.threads import Thread, project_threads

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    filename: str
    data: bytes
    content_type: str = "application/octet-stream"


def _safe_filename(filename: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", filename or "file")[:100]


class MessageService:

    def __init__(
        self,
        db: DBSession,
        storage: Optional[StorageService] = None,
        schedule: Callable = run_in_background,
    ):
        self.db = db
        self.storage = storage
        self.schedule = schedule
        self.students = StudentRepository(db)
        self.conversations = ConversationRepository(db)
        self.messages = MessageRepository(db)

    def _require_student(self, student_id: str):
        student = self.students.get_by_id(student_id)
        if not student:
            raise StudentNotFoundException(student_id)
        return student

    def upload_attachments(self, student_id: str, files: Sequence[UploadedFile]) -> list[dict]:
        """
        Upload files to blob storage, returning attachment dicts.

        Raises:
            UpstreamUnavailableException: any upload failed
        """
        if not files:
            return []
        if self.storage is None:
            raise UpstreamUnavailableException("Blob storage", RuntimeError("storage not configured"))

        attachments = []
        for upload in files:
            key = f"{ATTACHMENTS_PREFIX}/{student_id}/{int(time.time() * 1000)}_{_safe_filename(upload.filename)}"
            try:
                url = self.storage.upload(key, upload.data, content_type=upload.content_type)
            except Exception as e:
                raise UpstreamUnavailableException("Blob storage", e) from e
            attachments.append(Attachment(
                filename=upload.filename,
                url=url,
                mime_type=upload.content_type or "application/octet-stream",
                storage_path=key,
            ).model_dump())
        return attachments

    def submit_student_message(
        self,
        student_id: str,
        content: str,
        files: Optional[Sequence[UploadedFile]] = None,
    ) -> tuple[Message, bool]:
        """
        Persist a student message and schedule draft generation.

        Returns:
            (persisted message, whether generation was scheduled)

        Raises:
            InvalidInputException: empty content
            StudentNotFoundException: unknown student
            UpstreamUnavailableException: attachment upload failed (nothing persisted)
        """
        if not content or not content.strip():
            raise InvalidInputException("content")
        self._require_student(student_id)

        attachments = self.upload_attachments(student_id, files or [])
        conversation = self.conversations.get_or_create(student_id)
        message = self.messages.create(
            conversation_id=conversation.id,
            role=MessageRole.STUDENT.value,
            content=content,
            attachments=attachments,
        )
        self.db.commit()

        scheduled = not is_conversation_ending(content, get_settings().mentor_name)
        if scheduled:
            self.schedule(generate_draft_job, student_id, message.id)

        logger.info(json.dumps({
            "step": "MESSAGE_SUBMITTED",
            "student_id": student_id,
            "message_id": message.id,
            "attachments": len(attachments),
            "generation": "scheduled" if scheduled else "skipped",
        }))
        return message, scheduled

    def list_visible_messages(self, student_id: str) -> list[Message]:
        """Released messages for the student, oldest first. Drafts are never included."""
        self._require_student(student_id)
        conversation = self.conversations.get_by_student(student_id)
        if not conversation:
            return []
        return self.messages.list_visible(conversation.id)

    def list_threads(self, student_id: str) -> list[Thread]:
        return project_threads(self.list_visible_messages(student_id))

    def send_mentor_message(
        self,
        student_id: str,
        content: str,
        attachments: Optional[Sequence[dict]] = None,
    ) -> Message:
        """
        A message written by the mentor directly. It bypasses the draft gate
        and is released immediately.
        """
        if not content or not content.strip():
            raise InvalidInputException("content")
        self._require_student(student_id)

        conversation = self.conversations.get_or_create(student_id)
        message = self.messages.create(
            conversation_id=conversation.id,
            role=MessageRole.MENTOR.value,
            content=content,
            attachments=[Attachment.model_validate(a).model_dump() for a in attachments or []],
        )
        self.db.commit()
        logger.info(json.dumps({"step": "MENTOR_MESSAGE", "student_id": student_id, "message_id": message.id}))
        return message
