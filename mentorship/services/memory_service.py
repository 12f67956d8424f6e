"""
Long-term student memory.

A thin layer over MemoryRepository that fixes the memory type to long_term,
names the well-known keys, and builds the profile the agent sees.
"""
import logging
from datetime import datetime
from typing import Any, Optional
from sqlalchemy.orm import Session as DBSession

from shared.models.domain import MemoryType, Phase, ProgressStatus
from shared.repositories import MemoryRepository, ProgressRepository, StudentRepository
from shared.utils.constants import DAILY_NOTES_LIMIT, TOTAL_MILESTONES, TOTAL_TOPICS
from shared.utils.exceptions import StudentNotFoundException

logger = logging.getLogger(__name__)


class MEMORY_KEYS:
    # Profile
    LEARNING_STYLE = "profile.learning_style"
    INTERESTS = "profile.interests"
    STRENGTHS = "profile.strengths"
    CHALLENGES = "profile.challenges"
    BACKGROUND = "profile.background"
    GOALS = "profile.goals"

    # History
    TOPICS_DISCUSSED = "history.topics_discussed"
    QUESTIONS_ASKED = "history.questions_asked"
    LAST_INTERACTION = "history.last_interaction"
    DAILY_NOTES = "history.daily_notes"

    # Research (Phase II)
    RESEARCH_INTERESTS = "research.interests"
    PAPERS_READ = "research.papers_read"


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


class MemoryService:
    """Long-term memory reads and writes for one database session."""

    def __init__(self, db: DBSession):
        self.db = db
        self.repo = MemoryRepository(db)
        self.students = StudentRepository(db)
        self.progress = ProgressRepository(db)

    def get(self, student_id: str, key: str) -> Any:
        """Value for a key, or None when nothing was stored."""
        return self.repo.get_value(student_id, MemoryType.LONG_TERM.value, key)

    def set(self, student_id: str, key: str, value: Any) -> None:
        self.repo.set(student_id, MemoryType.LONG_TERM.value, key, value)

    def append(self, student_id: str, key: str, value: Any, max_items: Optional[int] = None) -> list:
        """
        Append to a list value and return the new list.

        Not atomic: concurrent appends to the same key are last-write-wins and
        can drop an entry.
        """
        row = self.repo.append(student_id, MemoryType.LONG_TERM.value, key, value, max_items=max_items)
        return row.value

    def get_all(self, student_id: str) -> dict[str, Any]:
        return {row.key: row.value for row in self.repo.get_all(student_id, MemoryType.LONG_TERM.value)}

    # ─── Higher-level helpers ─────────────────────────────────────────

    def save_daily_note(self, student_id: str, note: str) -> list:
        now = datetime.utcnow()
        entry = {"date": now.date().isoformat(), "note": note, "timestamp": now.isoformat()}
        return self.append(student_id, MEMORY_KEYS.DAILY_NOTES, entry, max_items=DAILY_NOTES_LIMIT)

    def recent_daily_notes(self, student_id: str, limit: int) -> list[dict]:
        notes = self.get(student_id, MEMORY_KEYS.DAILY_NOTES)
        if not isinstance(notes, list):
            return []
        return notes[-limit:]

    def record_topic_discussed(self, student_id: str, topic: str) -> None:
        topics = _as_list(self.get(student_id, MEMORY_KEYS.TOPICS_DISCUSSED))
        if topic not in topics:
            self.set(student_id, MEMORY_KEYS.TOPICS_DISCUSSED, topics + [topic])

    def record_interaction(self, student_id: str) -> None:
        """Stamp the last interaction and bump the question counter."""
        self.set(student_id, MEMORY_KEYS.LAST_INTERACTION, datetime.utcnow().isoformat())
        count = self.get(student_id, MEMORY_KEYS.QUESTIONS_ASKED)
        self.set(student_id, MEMORY_KEYS.QUESTIONS_ASKED, (count if isinstance(count, int) else 0) + 1)

    def get_profile(self, student_id: str) -> dict:
        """
        Student record, progress counters and remembered facts as one dict.

        Raises:
            StudentNotFoundException: unknown student id
        """
        student = self.students.get_by_id(student_id)
        if not student:
            raise StudentNotFoundException(student_id)

        memory = self.get_all(student_id)
        records = self.progress.list_by_student(student_id)
        topics_completed = sum(
            1 for r in records
            if r.phase == Phase.PHASE1.value and r.status == ProgressStatus.COMPLETED.value
        )

        phase_start = student.phase1_start if student.current_phase == Phase.PHASE1.value else student.phase2_start
        days_in_phase = (datetime.utcnow() - phase_start).days if phase_start else 0

        return {
            "name": student.user.name if student.user else "",
            "email": student.user.email if student.user else "",
            "enrollment_date": student.enrollment_date.isoformat() if student.enrollment_date else None,
            "current_phase": student.current_phase,
            "days_in_current_phase": days_in_phase,
            "current_topic_index": student.current_topic_index or 1,
            "topics_completed": topics_completed,
            "research_topic": student.research_topic,
            "current_milestone": student.current_milestone or 0,
            "learning_style": memory.get(MEMORY_KEYS.LEARNING_STYLE),
            "background": memory.get(MEMORY_KEYS.BACKGROUND),
            "goals": memory.get(MEMORY_KEYS.GOALS),
            "interests": _as_list(memory.get(MEMORY_KEYS.INTERESTS)),
            "strengths": _as_list(memory.get(MEMORY_KEYS.STRENGTHS)),
            "challenges": _as_list(memory.get(MEMORY_KEYS.CHALLENGES)),
            "topics_discussed": _as_list(memory.get(MEMORY_KEYS.TOPICS_DISCUSSED)),
            "questions_asked": memory.get(MEMORY_KEYS.QUESTIONS_ASKED) or 0,
            "last_interaction": memory.get(MEMORY_KEYS.LAST_INTERACTION),
        }


def format_profile_for_context(profile: dict) -> str:
    """Render a profile from `MemoryService.get_profile` as prompt lines."""
    lines = [
        f"Student: {profile['name']}",
        "Phase: " + ("Phase I (Learning)" if profile["current_phase"] == Phase.PHASE1.value else "Phase II (Research)"),
        f"Days in phase: {profile['days_in_current_phase']}",
    ]

    if profile["current_phase"] == Phase.PHASE1.value:
        lines.append(f"Current topic: {profile['current_topic_index']} of {TOTAL_TOPICS}")
        lines.append(f"Topics completed: {profile['topics_completed']}")
    else:
        lines.append(f"Research topic: {profile['research_topic'] or 'Not yet selected'}")
        lines.append(f"Current milestone: {profile['current_milestone']} of {TOTAL_MILESTONES}")

    if profile.get("learning_style"):
        lines.append(f"Learning style: {profile['learning_style']}")
    if profile.get("background"):
        lines.append(f"Background: {profile['background']}")
    if profile.get("goals"):
        lines.append(f"Goals: {profile['goals']}")
    if profile["interests"]:
        lines.append(f"Interests: {', '.join(map(str, profile['interests']))}")
    if profile["strengths"]:
        lines.append(f"Strengths: {', '.join(map(str, profile['strengths']))}")
    if profile["challenges"]:
        lines.append(f"Areas for improvement: {', '.join(map(str, profile['challenges']))}")
    if profile["topics_discussed"]:
        lines.append(f"Recent topics: {', '.join(map(str, profile['topics_discussed'][-5:]))}")

    return "\n".join(lines)
