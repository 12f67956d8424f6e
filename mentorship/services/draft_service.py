"""
Draft lifecycle service with state machine enforcement.

State machine: pending → released | rejected  (both terminal)

A draft is the only form agent-authored content takes before a mentor acts on
it. Releasing promotes the draft into the append-only message log; rejecting
keeps the row for audit but makes it invisible to every lookup.

All draft status changes go through this service. No code outside this
service may directly update Draft.status.
"""
import json
import logging
from datetime import datetime
from typing import Any, Optional, Sequence
from sqlalchemy.orm import Session as DBSession

from shared.models.domain import (
    Attachment,
    DraftStatus,
    MessageRole,
    ToolCallRecord,
    merge_attachments,
)
from shared.models.entities import Draft, Message
from shared.repositories import (
    ConversationRepository,
    DraftRepository,
    MessageRepository,
    StudentRepository,
)
from shared.utils.exceptions import (
    ConversationNotFoundException,
    DraftNotFoundException,
    InvalidDraftTransitionException,
    InvalidInputException,
)
from shared.utils.threads import ensure_subject

logger = logging.getLogger(__name__)


def _attachment_dicts(attachments: Optional[Sequence[Any]]) -> list[dict]:
    if not attachments:
        return []
    return [
        a.model_dump() if isinstance(a, Attachment) else Attachment.model_validate(a).model_dump()
        for a in attachments
    ]


def build_tool_call_records(
    tool_calls: Optional[Sequence[dict]],
    tool_results: Optional[Sequence[dict]] = None,
) -> Optional[list[dict]]:
    """
    Normalize tool calls to ordered {name, input, result} records.

    `tool_results`, when given, is positionally aligned with `tool_calls` and
    fills in any record that has no result of its own.
    """
    if not tool_calls:
        return None
    results = list(tool_results or [])
    records = []
    for index, call in enumerate(tool_calls):
        record = ToolCallRecord.model_validate(call)
        if not record.result and index < len(results) and results[index]:
            record.result = dict(results[index])
        records.append(record.model_dump())
    return records


class DraftService:
    """
    Single authority for creating, reading and transitioning drafts.

    Concurrency guarantees:
      - SELECT ... FOR UPDATE: each transition is an atomic single-row change
      - A conversation may hold several pending drafts; creating one never touches another
    """

    def __init__(self, db: DBSession):
        self.db = db
        self.drafts = DraftRepository(db)
        self.messages = MessageRepository(db)
        self.conversations = ConversationRepository(db)
        self.students = StudentRepository(db)

    # ─── Creation ─────────────────────────────────────────────────────

    def create_draft(
        self,
        conversation_id: str,
        content: str,
        tool_calls: Optional[Sequence[dict]] = None,
        tool_results: Optional[Sequence[dict]] = None,
        attachments: Optional[Sequence[Any]] = None,
    ) -> Draft:
        """
        Persist a new pending draft for a conversation.

        Raises:
            InvalidInputException: content is empty
            ConversationNotFoundException: conversation does not exist
        """
        if not content or not content.strip():
            raise InvalidInputException("content")
        if not self.conversations.get_by_id(conversation_id):
            raise ConversationNotFoundException(conversation_id)

        records = build_tool_call_records(tool_calls, tool_results)
        attachment_dicts = _attachment_dicts(attachments)

        draft = self.drafts.add(conversation_id, content, records, attachment_dicts)
        self.db.commit()

        logger.info(json.dumps({
            "step": "DRAFT_CREATED",
            "draft_id": draft.id,
            "conversation_id": conversation_id,
            "tool_calls": len(records or []),
        }))
        return draft

    # ─── Reads ────────────────────────────────────────────────────────

    def get_draft(self, draft_id: str) -> Draft:
        """Pending or released draft. Rejected drafts are reported as not found."""
        draft = self.drafts.get_by_id(draft_id)
        if not draft or draft.status == DraftStatus.REJECTED.value:
            raise DraftNotFoundException(draft_id)
        return draft

    def list_pending_drafts(self, conversation_id: Optional[str] = None) -> list[Draft]:
        """Pending drafts newest first, for one conversation or system-wide."""
        return self.drafts.list_pending(conversation_id)

    def list_pending_for_student(self, student_id: str) -> list[Draft]:
        conversation = self.conversations.get_by_student(student_id)
        if not conversation:
            return []
        return self.drafts.list_pending(conversation.id)

    def list_triage(self) -> list[dict]:
        """
        All pending drafts annotated with their student and the student message
        that provoked them (latest student message created before the draft).
        """
        annotated = []
        students_by_conversation: dict[str, Any] = {}

        for draft in self.drafts.list_pending():
            if draft.conversation_id not in students_by_conversation:
                conversation = self.conversations.get_by_id(draft.conversation_id)
                student = self.students.get_by_id(conversation.student_id) if conversation else None
                students_by_conversation[draft.conversation_id] = student
            student = students_by_conversation[draft.conversation_id]

            original = self.messages.latest_student_message_before(draft.conversation_id, draft.created_at)
            user = student.user if student else None
            annotated.append({
                "id": draft.id,
                "conversation_id": draft.conversation_id,
                "content": draft.content,
                "status": draft.status,
                "tool_calls": draft.tool_calls,
                "attachments": draft.attachments or [],
                "created_at": draft.created_at,
                "updated_at": draft.updated_at,
                "student_id": student.id if student else "",
                "student_name": user.name if user else None,
                "student_email": user.email if user else None,
                "original_message": original.content if original else None,
                "original_message_at": original.created_at if original else None,
            })
        return annotated

    # ─── Transitions ──────────────────────────────────────────────────

    def _load_for_transition(self, draft_id: str) -> Draft:
        draft = self.drafts.get_for_update(draft_id)
        if not draft or draft.status == DraftStatus.REJECTED.value:
            raise DraftNotFoundException(draft_id)
        return draft

    def approve(
        self,
        draft_id: str,
        attachments: Optional[Sequence[Any]] = None,
        reviewer_id: Optional[str] = None,
    ) -> Message:
        """
        Release a draft as-is. Approving an already released draft returns the
        message it was released as. Attachments cannot be added after release.
        """
        draft = self._load_for_transition(draft_id)
        if draft.status == DraftStatus.RELEASED.value:
            if attachments:
                self.db.rollback()
                raise InvalidDraftTransitionException(draft_id, draft.status, "attach files to")
            logger.info(f"Draft {draft_id} already released, approve is a no-op")
            self.db.rollback()
            return self.messages.get_by_id(draft.released_message_id)
        return self._release(draft, draft.content, attachments, reviewer_id)

    def edit_and_approve(
        self,
        draft_id: str,
        new_content: str,
        attachments: Optional[Sequence[Any]] = None,
        reviewer_id: Optional[str] = None,
    ) -> Message:
        """
        Replace the draft content and release it. A `Subject:` line on the
        original draft is carried over when the new content has none.
        """
        if not new_content or not new_content.strip():
            raise InvalidInputException("content")

        draft = self._load_for_transition(draft_id)
        if draft.status != DraftStatus.PENDING.value:
            self.db.rollback()
            raise InvalidDraftTransitionException(draft_id, draft.status, "edit")

        content = ensure_subject(draft.content, new_content)
        return self._release(draft, content, attachments, reviewer_id)

    def _release(
        self,
        draft: Draft,
        content: str,
        attachments: Optional[Sequence[Any]],
        reviewer_id: Optional[str],
    ) -> Message:
        merged = merge_attachments(draft.attachments or [], _attachment_dicts(attachments))
        edited = content != draft.content
        message = self.messages.create(
            conversation_id=draft.conversation_id,
            role=MessageRole.AGENT.value,
            content=content,
            tool_calls=draft.tool_calls,
            attachments=merged,
            draft_id=draft.id,
        )

        draft.content = content
        draft.attachments = merged
        draft.status = DraftStatus.RELEASED.value
        draft.released_message_id = message.id
        draft.reviewed_by = reviewer_id
        draft.reviewed_at = datetime.utcnow()
        self.db.commit()

        logger.info(json.dumps({
            "step": "DRAFT_RELEASED",
            "draft_id": draft.id,
            "message_id": message.id,
            "edited": edited,
            "attachments": len(merged),
        }))
        return message

    def reject(self, draft_id: str, reason: Optional[str] = None, reviewer_id: Optional[str] = None) -> None:
        """
        Discard a pending draft. The row is kept with status `rejected`.

        Raises:
            DraftNotFoundException: id never existed
            InvalidDraftTransitionException: draft was already released
        """
        draft = self.drafts.get_for_update(draft_id)
        if not draft:
            raise DraftNotFoundException(draft_id)
        if draft.status == DraftStatus.REJECTED.value:
            self.db.rollback()
            logger.info(f"Draft {draft_id} already rejected")
            return
        if draft.status == DraftStatus.RELEASED.value:
            self.db.rollback()
            raise InvalidDraftTransitionException(draft_id, draft.status, "reject")

        draft.status = DraftStatus.REJECTED.value
        draft.rejection_reason = reason
        draft.reviewed_by = reviewer_id
        draft.reviewed_at = datetime.utcnow()
        self.db.commit()

        logger.info(json.dumps({
            "step": "DRAFT_REJECTED",
            "draft_id": draft_id,
            "reason": reason,
        }))

    def update_draft_content(self, draft_id: str, content: str) -> Draft:
        """Change a pending draft's content without releasing it."""
        if not content or not content.strip():
            raise InvalidInputException("content")

        draft = self._load_for_transition(draft_id)
        if draft.status != DraftStatus.PENDING.value:
            self.db.rollback()
            raise InvalidDraftTransitionException(draft_id, draft.status, "update")

        # The subject line keeps the reply in its thread across repeated edits
        draft.content = ensure_subject(draft.content, content)
        draft.updated_at = datetime.utcnow()
        self.db.commit()
        logger.info(f"Draft {draft_id} content updated")
        return draft
