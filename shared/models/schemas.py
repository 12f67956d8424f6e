"""Pydantic API request/response schemas."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

from .domain import Attachment


class MessageResponse(BaseModel):
    """A released message as seen by the student or mentor."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    role: str
    content: str
    subject: Optional[str] = None
    thread_key: str
    status: str
    tool_calls: Optional[List[Dict[str, Any]]] = None
    attachments: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime


class DraftResponse(BaseModel):
    """A pending (or just-reviewed) draft."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    content: str
    status: str
    tool_calls: Optional[List[Dict[str, Any]]] = None
    attachments: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime
    updated_at: Optional[datetime] = None


class TriageDraftResponse(DraftResponse):
    """Draft annotated with the student and the message that provoked it."""
    student_id: str
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    original_message: Optional[str] = None
    original_message_at: Optional[datetime] = None


class SubmitMessageResponse(BaseModel):
    """Echo of a submitted student message plus whether a draft is being generated."""
    message: MessageResponse
    generation: Literal["scheduled", "skipped"]


class ThreadResponse(BaseModel):
    subject: str
    key: str
    preview: str
    message_count: int
    last_message_at: datetime
    message_ids: List[str]


class ApproveDraftRequest(BaseModel):
    attachments: Optional[List[Attachment]] = None


class EditDraftRequest(BaseModel):
    content: str
    attachments: Optional[List[Attachment]] = None


class UpdateDraftRequest(BaseModel):
    content: str


class RejectDraftRequest(BaseModel):
    reason: Optional[str] = None


class ReleaseResponse(BaseModel):
    """Result of approving a draft: the released message."""
    draft_id: str
    message: MessageResponse


class StudentResponse(BaseModel):
    id: str
    user_id: str
    name: str
    email: str
    current_phase: str
    current_topic_index: Optional[int] = None
    current_milestone: Optional[int] = None
    research_topic: Optional[str] = None
    enrollment_date: Optional[datetime] = None
    phase1_start: Optional[datetime] = None
    phase2_start: Optional[datetime] = None


class TransitionRequest(BaseModel):
    research_topic: Optional[str] = None


class MentorMessageRequest(BaseModel):
    content: str
    attachments: Optional[List[Attachment]] = None


class GenerateRoadmapRequest(BaseModel):
    topic: str
    duration_weeks: int = Field(default=10)
    custom_requirements: Optional[str] = None


class RoadmapResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    topic: str
    pdf_url: Optional[str] = None
    accepted: bool
    milestone_count: int = 0
    created_at: datetime


class InactiveStudentResponse(BaseModel):
    student_id: str
    name: str
    email: str
    current_phase: str
    last_student_message_at: Optional[datetime] = None
    days_since_last_message: Optional[int] = None
    urgency: Literal["low", "medium", "high", "critical"]
    suggested_action: str


class InactiveStudentsResponse(BaseModel):
    students: List[InactiveStudentResponse]
    summary: Dict[str, int]


class FollowupRequest(BaseModel):
    days_since_last_message: Optional[int] = None


class VoiceNoteRequest(BaseModel):
    note_type: str = "motivation"


class OnboardRequest(BaseModel):
    name: str
    email: str
    password: str
    preferred_name: Optional[str] = None
    mentor_id: Optional[str] = None
    send_welcome_email: bool = True


class OnboardResponse(BaseModel):
    user_id: str
    student_id: str
    email_sent: bool


class LoginRequest(BaseModel):
    email: str
    password: str
    role: Optional[Literal["student", "mentor", "admin"]] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    name: str
    role: str
    student_id: Optional[str] = None
