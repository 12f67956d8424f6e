"""Progress record data access layer."""
from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlalchemy.orm import Session as DBSession

from shared.models.entities import Progress


class ProgressRepository:
    """Repository for topic and milestone progress records."""

    def __init__(self, db: DBSession):
        self.db = db

    def list_by_student(self, student_id: str) -> list[Progress]:
        return (
            self.db.query(Progress)
            .filter(Progress.student_id == student_id)
            .order_by(Progress.created_at.asc())
            .all()
        )

    def create(
        self,
        student_id: str,
        phase: str,
        status: str,
        topic_index: Optional[int] = None,
        milestone: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Progress:
        record = Progress(
            id=str(uuid4()),
            student_id=student_id,
            phase=phase,
            topic_index=topic_index,
            milestone=milestone,
            status=status,
            notes=notes,
            completed_at=datetime.utcnow() if status == "completed" else None,
        )
        self.db.add(record)
        self.db.commit()
        return record
