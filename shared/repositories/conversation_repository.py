"""Conversation data access layer."""
import logging
from typing import Optional
from uuid import uuid4
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from shared.models.entities import Conversation

logger = logging.getLogger(__name__)


class ConversationRepository:
    """Repository for the one-per-student conversation."""

    def __init__(self, db: DBSession):
        self.db = db

    def get_by_id(self, conversation_id: str) -> Optional[Conversation]:
        return self.db.query(Conversation).filter(Conversation.id == conversation_id).first()

    def get_by_student(self, student_id: str) -> Optional[Conversation]:
        return self.db.query(Conversation).filter(Conversation.student_id == student_id).first()

    def get_or_create(self, student_id: str) -> Conversation:
        """
        Return the student's conversation, creating it on first use.

        A concurrent creator trips the unique constraint on student_id; the
        loser rolls back and re-reads the winner's row.
        """
        existing = self.get_by_student(student_id)
        if existing:
            return existing

        conversation = Conversation(id=str(uuid4()), student_id=student_id)
        try:
            self.db.add(conversation)
            self.db.commit()
            logger.info(f"Conversation {conversation.id} created for student {student_id}")
            return conversation
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Conversation for student {student_id} created concurrently, re-reading")
            existing = self.get_by_student(student_id)
            if existing is None:
                raise
            return existing
