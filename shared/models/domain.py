"""Domain enums and value objects shared by services, tools and API schemas."""
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    STUDENT = "student"
    AGENT = "agent"
    MENTOR = "mentor"
    SYSTEM = "system"


class MessageStatus(str, Enum):
    """Status of a message in the released log.

    The log only ever holds released content. ``approved`` and ``sent`` are
    legacy spellings of the same state and are read as released.
    """
    RELEASED = "released"
    APPROVED = "approved"
    SENT = "sent"


VISIBLE_MESSAGE_STATUSES = (
    MessageStatus.RELEASED.value,
    MessageStatus.APPROVED.value,
    MessageStatus.SENT.value,
)


class DraftStatus(str, Enum):
    """Draft lifecycle: pending -> released | rejected. Both targets are terminal."""
    PENDING = "pending"
    RELEASED = "released"
    REJECTED = "rejected"


class Phase(str, Enum):
    PHASE1 = "phase1"
    PHASE2 = "phase2"


class UserRole(str, Enum):
    STUDENT = "student"
    MENTOR = "mentor"
    ADMIN = "admin"


class MemoryType(str, Enum):
    SHORT_TERM = "short_term"
    LONG_TERM = "long_term"


class ProgressStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Attachment(BaseModel):
    """A stored file referenced by a message or draft."""
    filename: str
    url: str
    mime_type: str = "application/octet-stream"
    storage_path: Optional[str] = None

    def identity(self) -> str:
        """Key used to de-duplicate attachments when merging."""
        return self.storage_path or self.url


class ToolCallRecord(BaseModel):
    """One tool invocation made while composing a draft."""
    name: str
    input: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] = Field(default_factory=dict)


def merge_attachments(existing: list[dict], incoming: list[dict]) -> list[dict]:
    """Additively merge attachment dicts, keeping order and dropping duplicates."""
    merged: list[dict] = []
    seen: set[str] = set()
    for raw in list(existing or []) + list(incoming or []):
        attachment = Attachment.model_validate(raw)
        key = attachment.identity()
        if key in seen:
            continue
        seen.add(key)
        merged.append(attachment.model_dump())
    return merged
