"""SQLAlchemy ORM database models."""
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Text, DateTime, Boolean, ForeignKey, Index, JSON, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class User(Base):
    """User table - students, mentors and admins."""
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    preferred_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="student")  # 'student', 'mentor', 'admin'
    password_hash = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("Student", back_populates="user", uselist=False, foreign_keys="Student.user_id")

    __table_args__ = (
        Index("idx_user_email", "email"),
    )

    @property
    def first_name(self) -> str:
        if self.preferred_name:
            return self.preferred_name
        return (self.name or "Student").split(" ")[0]


class Student(Base):
    """Student enrollment record and phase progress."""
    __tablename__ = "students"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    mentor_id = Column(String, ForeignKey("users.id"), nullable=True)
    enrollment_date = Column(DateTime, default=datetime.utcnow)
    current_phase = Column(String, nullable=False, default="phase1")
    phase1_start = Column(DateTime, default=datetime.utcnow)
    phase2_start = Column(DateTime, nullable=True)
    current_topic_index = Column(Integer, default=1)  # 1-8, Phase I
    current_milestone = Column(Integer, nullable=True)  # Phase II
    research_topic = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="student", foreign_keys=[user_id])
    conversation = relationship("Conversation", back_populates="student", uselist=False)

    __table_args__ = (
        Index("idx_student_user", "user_id"),
    )


class Conversation(Base):
    """One conversation per student, created lazily on first message."""
    __tablename__ = "conversations"

    id = Column(String, primary_key=True)
    student_id = Column(String, ForeignKey("students.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("Student", back_populates="conversation")

    __table_args__ = (
        UniqueConstraint("student_id", name="uq_conversation_student"),
    )


class Message(Base):
    """Append-only log of released conversation turns.

    Drafts never live here; an agent message only appears once a mentor has
    released the draft it was promoted from.
    """
    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False)
    role = Column(String, nullable=False)  # student, agent, mentor, system
    content = Column(Text, nullable=False)
    subject = Column(String, nullable=True)
    thread_key = Column(String, nullable=False)  # derived once at creation
    tool_calls = Column(JSON, nullable=True)  # [{name, input, result}]
    attachments = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="released")
    draft_id = Column(String, ForeignKey("drafts.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_message_conversation_created", "conversation_id", "created_at"),
    )


class Draft(Base):
    """Agent-authored reply awaiting mentor disposition."""
    __tablename__ = "drafts"

    id = Column(String, primary_key=True)
    conversation_id = Column(String, ForeignKey("conversations.id"), nullable=False)
    content = Column(Text, nullable=False)
    tool_calls = Column(JSON, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="pending")  # pending, released, rejected
    released_message_id = Column(String, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    reviewed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_draft_status_created", "status", "created_at"),
        Index("idx_draft_conversation", "conversation_id"),
    )


class Memory(Base):
    """Per-student memory facts, last write wins per (student, type, key)."""
    __tablename__ = "memory"

    id = Column(String, primary_key=True)
    student_id = Column(String, ForeignKey("students.id"), nullable=False)
    memory_type = Column(String, nullable=False)  # short_term, long_term
    key = Column(String, nullable=False)
    value = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("student_id", "memory_type", "key", name="uq_memory_student_type_key"),
    )


class Progress(Base):
    """Progress records for topics (Phase I) and milestones (Phase II)."""
    __tablename__ = "progress"

    id = Column(String, primary_key=True)
    student_id = Column(String, ForeignKey("students.id"), nullable=False)
    phase = Column(String, nullable=False)
    topic_index = Column(Integer, nullable=True)
    milestone = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default="not_started")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_progress_student", "student_id"),
    )


class Roadmap(Base):
    """Generated research roadmap (structured JSON + rendered PDF)."""
    __tablename__ = "roadmaps"

    id = Column(String, primary_key=True)
    student_id = Column(String, ForeignKey("students.id"), nullable=False)
    topic = Column(Text, nullable=False)
    content = Column(JSON, nullable=False)
    pdf_path = Column(String, nullable=True)
    pdf_url = Column(String, nullable=True)
    accepted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_roadmap_student_created", "student_id", "created_at"),
    )
