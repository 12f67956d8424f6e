"""
Background draft generation using Python threads.

Uses independent DB sessions for background work to avoid
session lifecycle issues with the request-scoped session.

Usage:
    from mentorship.services.background import run_in_background

    # target_fn signature: (db_session, *args, **kwargs)
    thread = run_in_background(generate_draft_job, student_id, message_id)
"""
import logging
import threading

from database import get_db_manager
from shared.utils.exceptions import BootcampException

logger = logging.getLogger(__name__)


def run_in_background(target_fn, *args, **kwargs) -> threading.Thread:
    """
    Run a function in a daemon thread with its own DB session.

    Failures are logged, never raised; the request that scheduled the work
    has already returned.
    """
    def wrapper():
        session = get_db_manager().session_factory()
        try:
            target_fn(session, *args, **kwargs)
        except BootcampException as e:
            session.rollback()
            logger.error(f"Background task {target_fn.__name__} failed: {e}")
        except Exception as e:
            session.rollback()
            logger.error(f"Background task {target_fn.__name__} failed: {e}", exc_info=True)
        finally:
            session.close()

    thread = threading.Thread(target=wrapper, daemon=True)
    thread.start()
    logger.info(f"Launched background task: {target_fn.__name__}")
    return thread


def generate_draft_job(db, student_id: str, message_id: str) -> None:
    """Draft a reply to one student message. No draft appears if the model is unavailable."""
    from mentorship.services.agent_service import MentorAgentService
    from shared.services.storage_service import get_storage

    agent = MentorAgentService.from_settings(db, storage=get_storage())
    agent.generate_draft(student_id, message_id)
