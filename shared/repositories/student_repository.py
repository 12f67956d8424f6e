"""Student data access layer."""
import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlalchemy import func
from sqlalchemy.orm import Session as DBSession, joinedload

from shared.models.entities import Student, Conversation, Message

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "current_phase",
    "phase2_start",
    "current_topic_index",
    "current_milestone",
    "research_topic",
    "mentor_id",
}


class StudentRepository:
    """Repository for student records."""

    def __init__(self, db: DBSession):
        self.db = db

    def get_by_id(self, student_id: str) -> Optional[Student]:
        return (
            self.db.query(Student)
            .options(joinedload(Student.user))
            .filter(Student.id == student_id)
            .first()
        )

    def get_by_user_id(self, user_id: str) -> Optional[Student]:
        return self.db.query(Student).filter(Student.user_id == user_id).first()

    def list_all(self) -> list[Student]:
        return (
            self.db.query(Student)
            .options(joinedload(Student.user))
            .order_by(Student.enrollment_date.desc())
            .all()
        )

    def create(self, user_id: str, mentor_id: Optional[str] = None) -> Student:
        """Add a Phase I student to the session (caller commits)."""
        now = datetime.utcnow()
        student = Student(
            id=str(uuid4()),
            user_id=user_id,
            mentor_id=mentor_id,
            enrollment_date=now,
            current_phase="phase1",
            phase1_start=now,
            current_topic_index=1,
        )
        self.db.add(student)
        self.db.flush()
        return student

    def update(self, student_id: str, **fields) -> Optional[Student]:
        """
        Update whitelisted student fields and commit.

        Returns:
            Updated Student, or None if it does not exist
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update student fields: {sorted(unknown)}")

        student = self.db.query(Student).filter(Student.id == student_id).first()
        if not student:
            return None
        for name, value in fields.items():
            setattr(student, name, value)
        student.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(student)
        return student

    def last_student_message_times(self) -> dict[str, Optional[datetime]]:
        """Map every student id to the time of their latest own message (None if never)."""
        rows = (
            self.db.query(Student.id, func.max(Message.created_at))
            .outerjoin(Conversation, Conversation.student_id == Student.id)
            .outerjoin(
                Message,
                (Message.conversation_id == Conversation.id) & (Message.role == "student"),
            )
            .group_by(Student.id)
            .all()
        )
        return {student_id: last_at for student_id, last_at in rows}
