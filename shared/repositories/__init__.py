"""Repository layer - data access abstraction."""
from shared.repositories.user_repository import UserRepository
from shared.repositories.student_repository import StudentRepository
from shared.repositories.conversation_repository import ConversationRepository
from shared.repositories.message_repository import MessageRepository
from shared.repositories.draft_repository import DraftRepository
from shared.repositories.memory_repository import MemoryRepository
from shared.repositories.progress_repository import ProgressRepository
from shared.repositories.roadmap_repository import RoadmapRepository

__all__ = [
    "UserRepository",
    "StudentRepository",
    "ConversationRepository",
    "MessageRepository",
    "DraftRepository",
    "MemoryRepository",
    "ProgressRepository",
    "RoadmapRepository",
]
