"""Released message log data access layer.

Writes only add and flush; the owning service commits.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlalchemy.orm import Session as DBSession

from shared.models.domain import MessageStatus, VISIBLE_MESSAGE_STATUSES
from shared.models.entities import Message
from shared.utils.threads import derive_subject

logger = logging.getLogger(__name__)


class MessageRepository:
    """Repository for the append-only released message log."""

    def __init__(self, db: DBSession):
        self.db = db

    def create(
        self,
        conversation_id: str,
        role: str,
        content: str,
        tool_calls: Optional[list[dict]] = None,
        attachments: Optional[list[dict]] = None,
        draft_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Message:
        """Append a released message. Subject and thread key are derived here, once."""
        subject = derive_subject(content)
        message = Message(
            id=str(uuid4()),
            conversation_id=conversation_id,
            role=role,
            content=content,
            subject=subject.display,
            thread_key=subject.key,
            tool_calls=tool_calls,
            attachments=list(attachments or []),
            status=MessageStatus.RELEASED.value,
            draft_id=draft_id,
            created_at=created_at or datetime.utcnow(),
        )
        self.db.add(message)
        self.db.flush()
        return message

    def get_by_id(self, message_id: str) -> Optional[Message]:
        return self.db.query(Message).filter(Message.id == message_id).first()

    def list_visible(self, conversation_id: str) -> list[Message]:
        """Released messages in chronological order."""
        return (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.status.in_(VISIBLE_MESSAGE_STATUSES),
            )
            .order_by(Message.created_at.asc())
            .all()
        )

    def list_recent(self, conversation_id: str, limit: int) -> list[Message]:
        """Most recent released messages, newest first."""
        return (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.status.in_(VISIBLE_MESSAGE_STATUSES),
            )
            .order_by(Message.created_at.desc())
            .limit(limit)
            .all()
        )

    def latest_student_message_before(self, conversation_id: str, before: datetime) -> Optional[Message]:
        """Most recent student message created strictly before `before`."""
        return (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.role == "student",
                Message.created_at < before,
            )
            .order_by(Message.created_at.desc())
            .first()
        )
