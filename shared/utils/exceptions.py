"""Custom exception hierarchy for better error handling."""
from fastapi import HTTPException, status


class BootcampException(Exception):
    """Base exception for all application errors."""
    pass


class NotFoundException(BootcampException):
    """Raised when a referenced entity id does not resolve."""

    entity = "Resource"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} {entity_id} not found")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{self.entity} {self.entity_id} not found"
        )


class DraftNotFoundException(NotFoundException):
    """Raised when a draft is absent or was rejected."""
    entity = "Draft"


class StudentNotFoundException(NotFoundException):
    entity = "Student"


class ConversationNotFoundException(NotFoundException):
    entity = "Conversation"


class RoadmapNotFoundException(NotFoundException):
    """Raised when a student has no roadmap yet."""
    entity = "Roadmap for student"


class VoiceNoteNotFoundException(NotFoundException):
    """Raised when no recorded asset exists for a (phase, note type)."""
    entity = "Voice note"

    def __init__(self, filename: str):
        self.entity_id = filename
        BootcampException.__init__(self, f"Voice note file not found: {filename}")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(self)
        )


class InvalidInputException(BootcampException):
    """Raised when a required field is missing or empty. No side effect has happened."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Missing required field: {field}")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(self)
        )


class InvalidDraftTransitionException(BootcampException):
    """Raised when a draft cannot move from its current state."""

    def __init__(self, draft_id: str, from_state: str, action: str):
        self.draft_id = draft_id
        self.from_state = from_state
        self.action = action
        super().__init__(f"Cannot {action} draft {draft_id} in '{from_state}' state")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(self)
        )


class PhaseTransitionException(BootcampException):
    """Raised when a student phase change is not allowed."""

    def __init__(self, student_id: str, message: str):
        self.student_id = student_id
        super().__init__(message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(self)
        )


class UpstreamUnavailableException(BootcampException):
    """Raised when the language model or blob storage fails outright."""

    def __init__(self, service: str, original_error: Exception):
        self.service = service
        self.original_error = original_error
        super().__init__(f"{service} unavailable: {str(original_error)}")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{self.service} temporarily unavailable"
        )


class DatabaseException(BootcampException):
    """Raised when database operations fail."""

    def __init__(self, operation: str, original_error: Exception):
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"Database {operation} failed: {str(original_error)}")

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database operation failed"
        )
