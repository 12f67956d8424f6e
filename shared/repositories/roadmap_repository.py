"""Roadmap data access layer."""
from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlalchemy.orm import Session as DBSession

from shared.models.entities import Roadmap


class RoadmapRepository:
    """Repository for generated research roadmaps."""

    def __init__(self, db: DBSession):
        self.db = db

    def latest_for_student(self, student_id: str) -> Optional[Roadmap]:
        return (
            self.db.query(Roadmap)
            .filter(Roadmap.student_id == student_id)
            .order_by(Roadmap.created_at.desc())
            .first()
        )

    def latest_accepted(self, student_id: str) -> Optional[Roadmap]:
        return (
            self.db.query(Roadmap)
            .filter(Roadmap.student_id == student_id, Roadmap.accepted.is_(True))
            .order_by(Roadmap.created_at.desc())
            .first()
        )

    def create(self, student_id: str, topic: str, content: dict,
               pdf_path: Optional[str] = None, pdf_url: Optional[str] = None) -> Roadmap:
        roadmap = Roadmap(
            id=str(uuid4()),
            student_id=student_id,
            topic=topic,
            content=content,
            pdf_path=pdf_path,
            pdf_url=pdf_url,
            accepted=False,
        )
        self.db.add(roadmap)
        self.db.commit()
        return roadmap

    def mark_accepted(self, roadmap: Roadmap) -> Roadmap:
        roadmap.accepted = True
        roadmap.updated_at = datetime.utcnow()
        self.db.commit()
        return roadmap
