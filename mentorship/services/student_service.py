"""
Student directory, phase transitions, progress updates, onboarding and
engagement (inactive student) views.
"""
import json
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from auth.services.auth_service import hash_password
from config import get_settings
from mentorship.prompts.loader import PromptLoader
from shared.models.domain import MessageRole, Phase, ProgressStatus, UserRole
from shared.models.entities import Progress, Student
from shared.repositories import (
    ConversationRepository,
    MessageRepository,
    ProgressRepository,
    StudentRepository,
    UserRepository,
)
from shared.services.email_service import EmailService
from shared.utils.constants import (
    INACTIVE_DEFAULT_MIN_DAYS,
    PHASE1_TARGET_DAYS,
    TOTAL_MILESTONES,
    TOTAL_TOPICS,
    URGENCY_CRITICAL_DAYS,
    URGENCY_HIGH_DAYS,
    URGENCY_MEDIUM_DAYS,
)
from shared.utils.exceptions import (
    InvalidInputException,
    PhaseTransitionException,
    StudentNotFoundException,
)

logger = logging.getLogger(__name__)

_URGENCY_LEVELS = ("critical", "high", "medium", "low")


def classify_urgency(days: Optional[int]) -> tuple[str, str]:
    """(urgency, suggested action) for days since the student's last message."""
    if days is None or days >= URGENCY_CRITICAL_DAYS:
        return "critical", "Urgent re-engagement needed. Consider voice note + personalized message."
    if days >= URGENCY_HIGH_DAYS:
        return "high", "Send encouraging follow-up with voice note."
    if days >= URGENCY_MEDIUM_DAYS:
        return "medium", "Gentle check-in on progress."
    return "low", "Student is active. No action needed."


def student_to_dict(student: Student) -> dict:
    user = student.user
    return {
        "id": student.id,
        "user_id": student.user_id,
        "name": user.name if user else "",
        "email": user.email if user else "",
        "current_phase": student.current_phase,
        "current_topic_index": student.current_topic_index,
        "current_milestone": student.current_milestone,
        "research_topic": student.research_topic,
        "enrollment_date": student.enrollment_date,
        "phase1_start": student.phase1_start,
        "phase2_start": student.phase2_start,
    }


class StudentService:
    """Operations on student records. Methods commit their own changes."""

    def __init__(self, db: DBSession):
        self.db = db
        self.students = StudentRepository(db)
        self.users = UserRepository(db)
        self.progress = ProgressRepository(db)
        self.conversations = ConversationRepository(db)
        self.messages = MessageRepository(db)

    def get_student(self, student_id: str) -> Student:
        student = self.students.get_by_id(student_id)
        if not student:
            raise StudentNotFoundException(student_id)
        return student

    def list_students(self) -> list[Student]:
        return self.students.list_all()

    # ─── Phase transition ─────────────────────────────────────────────

    def transition_to_phase2(self, student_id: str, research_topic: Optional[str] = None) -> Student:
        """
        Mark Phase I complete.

        Raises:
            StudentNotFoundException: unknown student
            PhaseTransitionException: student is already in Phase II
        """
        student = self.get_student(student_id)
        if student.current_phase == Phase.PHASE2.value:
            raise PhaseTransitionException(student_id, "Student is already in Phase II")

        fields = {
            "current_phase": Phase.PHASE2.value,
            "phase2_start": datetime.utcnow(),
            "current_milestone": 1,
        }
        if research_topic:
            fields["research_topic"] = research_topic
        student = self.students.update(student_id, **fields)

        self.progress.create(
            student_id=student_id,
            phase=Phase.PHASE2.value,
            milestone=1,
            status=ProgressStatus.NOT_STARTED.value,
            notes=f"Starting research on: {research_topic}" if research_topic else None,
        )

        logger.info(json.dumps({
            "step": "PHASE_TRANSITION",
            "student_id": student_id,
            "to": Phase.PHASE2.value,
            "research_topic": research_topic,
        }))
        return student

    # ─── Progress ─────────────────────────────────────────────────────

    def progress_summary(self, student_id: str) -> dict:
        student = self.get_student(student_id)
        records = self.progress.list_by_student(student_id)

        def completed(phase: str) -> int:
            return sum(1 for r in records if r.phase == phase and r.status == ProgressStatus.COMPLETED.value)

        return {
            "student_id": student_id,
            "current_phase": student.current_phase,
            "current_topic_index": student.current_topic_index,
            "current_milestone": student.current_milestone,
            "research_topic": student.research_topic,
            "completed_topics": completed(Phase.PHASE1.value),
            "completed_milestones": completed(Phase.PHASE2.value),
            "total_topics": TOTAL_TOPICS,
            "total_milestones": TOTAL_MILESTONES,
            "progress_records": [_progress_to_dict(r) for r in records],
        }

    def update_progress(
        self,
        student_id: str,
        topic_index: Optional[int] = None,
        milestone: Optional[int] = None,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[Progress]:
        """
        Move the student's topic or milestone pointer and record progress for
        the student's current phase.

        Raises:
            InvalidInputException: index out of range or unknown status
            StudentNotFoundException: unknown student
        """
        if topic_index is not None and not 1 <= topic_index <= TOTAL_TOPICS:
            raise InvalidInputException("topic_index", f"topic_index must be between 1 and {TOTAL_TOPICS}")
        if milestone is not None and not 1 <= milestone <= TOTAL_MILESTONES:
            raise InvalidInputException("milestone", f"milestone must be between 1 and {TOTAL_MILESTONES}")
        valid_statuses = {s.value for s in ProgressStatus}
        if status is not None and status not in valid_statuses:
            raise InvalidInputException("status", f"status must be one of {sorted(valid_statuses)}")

        student = self.get_student(student_id)

        updates = {}
        if topic_index is not None:
            updates["current_topic_index"] = topic_index
        if milestone is not None:
            updates["current_milestone"] = milestone
        if updates:
            self.students.update(student_id, **updates)

        status = status or ProgressStatus.IN_PROGRESS.value
        if student.current_phase == Phase.PHASE1.value and topic_index is not None:
            return self.progress.create(student_id, Phase.PHASE1.value, status, topic_index=topic_index, notes=notes)
        if student.current_phase == Phase.PHASE2.value and milestone is not None:
            return self.progress.create(student_id, Phase.PHASE2.value, status, milestone=milestone, notes=notes)
        return None

    # ─── Onboarding ───────────────────────────────────────────────────

    def onboard(
        self,
        name: str,
        email: str,
        password: str,
        preferred_name: Optional[str] = None,
        mentor_id: Optional[str] = None,
        send_welcome_email: bool = True,
        email_service: Optional[EmailService] = None,
    ) -> dict:
        """
        Create the user, student, conversation and welcome message. The welcome
        email is best effort: a send failure is reported, never raised.

        Raises:
            InvalidInputException: missing field or email already registered
        """
        for field, value in (("name", name), ("email", email), ("password", password)):
            if not value or not value.strip():
                raise InvalidInputException(field)
        if self.users.get_by_email(email):
            raise InvalidInputException("email", f"A user with email {email} already exists")

        settings = get_settings()
        display_name = preferred_name or name.split(" ")[0]

        try:
            user = self.users.create(
                email=email,
                name=name,
                role=UserRole.STUDENT.value,
                password_hash=hash_password(password),
                preferred_name=display_name,
            )
            student = self.students.create(user.id, mentor_id=mentor_id)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise InvalidInputException("email", f"A user with email {email} already exists")

        conversation = self.conversations.get_or_create(student.id)
        welcome = PromptLoader.format(
            "welcome_message",
            first_name=display_name,
            program_name=settings.program_name,
            phase1_weeks=round(PHASE1_TARGET_DAYS / 7),
            mentor_name=settings.mentor_name,
        )
        # Fixed onboarding text, authored by the program rather than the model
        self.messages.create(conversation.id, MessageRole.MENTOR.value, welcome)
        self.db.commit()

        email_sent = False
        if send_welcome_email:
            email_service = email_service or EmailService()
            body = PromptLoader.format(
                "welcome_email",
                first_name=display_name,
                program_name=settings.program_name,
                login_url=settings.login_url,
                email=user.email,
                mentor_name=settings.mentor_name,
            )
            email_sent = email_service.send(
                user.email, f"Welcome to the {settings.program_name} - Your Login Details", body
            )

        logger.info(json.dumps({
            "step": "STUDENT_ONBOARDED",
            "student_id": student.id,
            "user_id": user.id,
            "email_sent": email_sent,
        }))
        return {"user_id": user.id, "student_id": student.id, "email_sent": email_sent}

    # ─── Engagement ───────────────────────────────────────────────────

    def inactive_students(self, min_days: int = INACTIVE_DEFAULT_MIN_DAYS, show_all: bool = False) -> dict:
        """
        Students bucketed by days since their last own message. Students who
        never wrote are measured from enrollment.
        """
        now = datetime.utcnow()
        last_times = self.students.last_student_message_times()
        entries = []

        for student in self.students.list_all():
            last_at = last_times.get(student.id)
            reference = last_at or student.enrollment_date
            days = (now - reference).days if reference else None
            if not show_all and days is not None and days < min_days:
                continue

            urgency, action = classify_urgency(days)
            entries.append({
                "student_id": student.id,
                "name": student.user.name if student.user else "",
                "email": student.user.email if student.user else "",
                "current_phase": student.current_phase,
                "last_student_message_at": last_at,
                "days_since_last_message": days,
                "urgency": urgency,
                "suggested_action": action,
            })

        # Most inactive first; unknown inactivity leads
        entries.sort(key=lambda e: (e["days_since_last_message"] is not None, -(e["days_since_last_message"] or 0)))

        summary = {"total": len(entries)}
        for level in _URGENCY_LEVELS:
            summary[level] = sum(1 for e in entries if e["urgency"] == level)
        return {"students": entries, "summary": summary}


def _progress_to_dict(record: Progress) -> dict:
    return {
        "id": record.id,
        "phase": record.phase,
        "topic_index": record.topic_index,
        "milestone": record.milestone,
        "status": record.status,
        "notes": record.notes,
        "created_at": record.created_at.isoformat() if record.created_at else None,
        "completed_at": record.completed_at.isoformat() if record.completed_at else None,
    }
