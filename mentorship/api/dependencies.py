"""Collaborators injected into the mentorship routes. Tests override these."""
from typing import Callable

from mentorship.services.background import run_in_background
from shared.services.storage_service import StorageService, get_storage


def get_storage_service() -> StorageService:
    return get_storage()


def get_scheduler() -> Callable:
    """How background draft generation is started."""
    return run_in_background


def get_roadmap_llm():
    """None lets RoadmapService build the configured roadmap model."""
    return None


def get_followup_llm():
    """None lets EngagementService build the configured follow-up model."""
    return None


def get_email_service():
    from shared.services.email_service import EmailService
    return EmailService()
