"""Draft data access layer.

Writes only add and flush; DraftService owns commits and status changes.
"""
import logging
from typing import Optional
from uuid import uuid4
from sqlalchemy.orm import Session as DBSession

from shared.models.domain import DraftStatus
from shared.models.entities import Draft

logger = logging.getLogger(__name__)


class DraftRepository:
    """Repository for agent drafts."""

    def __init__(self, db: DBSession):
        self.db = db

    def add(
        self,
        conversation_id: str,
        content: str,
        tool_calls: Optional[list[dict]] = None,
        attachments: Optional[list[dict]] = None,
    ) -> Draft:
        draft = Draft(
            id=str(uuid4()),
            conversation_id=conversation_id,
            content=content,
            tool_calls=tool_calls,
            attachments=list(attachments or []),
            status=DraftStatus.PENDING.value,
        )
        self.db.add(draft)
        self.db.flush()
        return draft

    def get_by_id(self, draft_id: str) -> Optional[Draft]:
        return self.db.query(Draft).filter(Draft.id == draft_id).first()

    def get_for_update(self, draft_id: str) -> Optional[Draft]:
        """Row-locked read for a status transition."""
        return self.db.query(Draft).filter(Draft.id == draft_id).with_for_update().first()

    def list_pending(self, conversation_id: Optional[str] = None) -> list[Draft]:
        """Pending drafts, newest first; all conversations when no id is given."""
        query = self.db.query(Draft).filter(Draft.status == DraftStatus.PENDING.value)
        if conversation_id:
            query = query.filter(Draft.conversation_id == conversation_id)
        return query.order_by(Draft.created_at.desc()).all()
