"""Pre-recorded voice notes: lookup by (phase, note type) and delivery via storage."""
import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from mentorship.services.memory_service import MemoryService
from shared.models.domain import Attachment, Phase
from shared.services.storage_service import StorageService
from shared.utils.constants import VOICE_NOTES_PREFIX
from shared.utils.exceptions import UpstreamUnavailableException, VoiceNoteNotFoundException

logger = logging.getLogger(__name__)

NOTE_TYPES = ("motivation", "progress", "reminder")

VOICE_NOTES = {
    Phase.PHASE1.value: {
        "motivation": {
            "filename": "phase1-motivation.mp3",
            "display_name": "Phase I Motivation",
            "description": "General motivational message for Phase I students",
            "message_text": (
                "Hey! I just wanted to send you a quick voice note to check in.\n\n"
                "I know the bootcamp can feel overwhelming sometimes, but you are making real progress. "
                "Take it one video at a time, that is all you need to do.\n\n"
                "I have attached a voice note for you. Give it a listen when you get a chance.\n\n"
                "Looking forward to hearing from you!\n\n- {mentor_name}"
            ),
        },
    },
    Phase.PHASE2.value: {
        "motivation": {
            "filename": "phase2-motivation.mp3",
            "display_name": "Phase II Motivation",
            "description": "General motivational message for Phase II students",
            "message_text": (
                "Hey! I wanted to send you a quick voice note to check in on your research progress.\n\n"
                "Research can be challenging, but every paper goes through a messy middle phase. "
                "That is completely normal.\n\n"
                "I have attached a voice note with some thoughts. Give it a listen when you get a chance.\n\n"
                "Let me know how things are going!\n\n- {mentor_name}"
            ),
        },
    },
}


def available_notes(phase: str) -> list[dict]:
    return [
        {"type": note_type, "display_name": cfg["display_name"], "description": cfg["description"]}
        for note_type, cfg in VOICE_NOTES.get(phase, {}).items()
    ]


def resolve_note(phase: str, note_type: str) -> dict:
    """
    Config for a note. Only motivation notes are recorded so far; every
    requested type falls back to the phase's motivation note.
    """
    phase_notes = VOICE_NOTES.get(phase, {})
    config = phase_notes.get(note_type) or phase_notes.get("motivation")
    if not config:
        raise VoiceNoteNotFoundException(f"{phase}/{note_type}")
    return config


class VoiceNoteService:

    def __init__(self, db: DBSession, storage: StorageService, assets_dir: Optional[Path] = None):
        self.db = db
        self.storage = storage
        self.assets_dir = Path(assets_dir or get_settings().voice_notes_dir)

    def asset_path(self, phase: str, note_type: str) -> Path:
        """
        Raises:
            VoiceNoteNotFoundException: no config or the file is missing
        """
        config = resolve_note(phase, note_type)
        path = self.assets_dir / config["filename"]
        if not path.is_file():
            raise VoiceNoteNotFoundException(config["filename"])
        return path

    def deliver(self, student_id: str, phase: str, note_type: str, reason: Optional[str] = None) -> dict:
        """
        Upload a copy of the note for this student and remember that it was sent.

        Raises:
            VoiceNoteNotFoundException: asset missing (checked before any upload)
            UpstreamUnavailableException: storage upload failed
        """
        config = resolve_note(phase, note_type)
        path = self.asset_path(phase, note_type)

        stamp = int(time.time() * 1000)
        key = f"{VOICE_NOTES_PREFIX}/{student_id}/{phase}_{note_type}_{stamp}.mp3"
        try:
            url = self.storage.upload(key, path.read_bytes(), content_type="audio/mpeg")
        except Exception as e:
            raise UpstreamUnavailableException("Blob storage", e) from e

        MemoryService(self.db).set(student_id, f"voice_note_{stamp}", {
            "type": note_type,
            "reason": reason or "Proactive engagement",
            "sent_at": datetime.utcnow().isoformat(),
        })

        logger.info(json.dumps({
            "step": "VOICE_NOTE_SENT",
            "student_id": student_id,
            "note_type": note_type,
            "reason": reason,
        }))

        attachment = Attachment(
            filename=config["filename"],
            url=url,
            mime_type="audio/mpeg",
            storage_path=key,
        )
        return {
            "voice_note_url": url,
            "note_type": note_type,
            "display_name": config["display_name"],
            "description": config["description"],
            "message_text": config["message_text"].format(mentor_name=get_settings().mentor_name),
            "attachment": attachment.model_dump(),
        }
