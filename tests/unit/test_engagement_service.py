"""Unit tests for mentorship/services/engagement_service.py and background jobs."""
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from config import get_settings
from mentorship.exceptions import LLMServiceError
from mentorship.services.background import generate_draft_job, run_in_background
from mentorship.services.draft_service import DraftService
from mentorship.services.engagement_service import EngagementService, phase_description
from shared.models.entities import Draft, Message
from shared.repositories import MessageRepository, StudentRepository
from shared.utils.exceptions import (
    InvalidInputException,
    StudentNotFoundException,
    UpstreamUnavailableException,
    VoiceNoteNotFoundException,
)


def _llm(output_text="**Hi** Asha, how is the RAG module going?"):
    llm = MagicMock()
    llm.call.return_value = {"output_text": output_text, "reasoning": None, "parsed": None}
    return llm


# ---------------------------------------------------------------------------
# Follow-up drafts
# ---------------------------------------------------------------------------

class TestFollowupDraft:

    def test_creates_pending_draft(self, db_session, student, conversation):
        MessageRepository(db_session).create(
            conversation.id, "student", "I'll watch lesson 2 tonight",
            created_at=datetime.utcnow() - timedelta(days=9),
        )
        db_session.commit()
        llm = _llm()

        draft = EngagementService(db_session, llm=llm).generate_followup_draft(student.id)

        assert draft.status == "pending"
        assert draft.content == "Subject: Checking in\n\nHi Asha, how is the RAG module going?"
        assert db_session.query(Message).count() == 1

        prompt = llm.call.call_args[0][0]
        assert "has not written for 9 days" in prompt
        assert "Asha: I'll watch lesson 2 tonight" in prompt
        assert "Phase I, video lectures" in prompt
        assert llm.call.call_args[1] == {"json_mode": False}

    def test_explicit_days_and_no_history(self, db_session, student):
        llm = _llm()
        EngagementService(db_session, llm=llm).generate_followup_draft(student.id, days_inactive=21)
        prompt = llm.call.call_args[0][0]
        assert "has not written for 21 days" in prompt
        assert "No conversation yet." in prompt

    def test_followup_leaves_pending_reply_alone(self, db_session, student, conversation):
        reply = DraftService(db_session).create_draft(conversation.id, "Subject: LoRA\n\nStart with rank 8.")

        followup = EngagementService(db_session, llm=_llm()).generate_followup_draft(student.id)

        pending = DraftService(db_session).list_pending_drafts(conversation.id)
        assert [d.id for d in pending] == [followup.id, reply.id]

    def test_model_failure(self, db_session, student):
        llm = MagicMock()
        llm.call.side_effect = LLMServiceError("timeout")
        with pytest.raises(UpstreamUnavailableException):
            EngagementService(db_session, llm=llm).generate_followup_draft(student.id)
        assert db_session.query(Draft).count() == 0

    def test_empty_model_output(self, db_session, student):
        with pytest.raises(UpstreamUnavailableException):
            EngagementService(db_session, llm=_llm("   ")).generate_followup_draft(student.id)

    def test_unknown_student(self, db_session):
        with pytest.raises(StudentNotFoundException):
            EngagementService(db_session, llm=_llm()).generate_followup_draft("missing")


class TestPhaseDescription:

    def test_phase2_with_and_without_topic(self, db_session, student):
        StudentRepository(db_session).update(student.id, current_phase="phase2")
        assert phase_description(student) == "Phase II, research project, topic not selected yet"
        StudentRepository(db_session).update(student.id, research_topic="Judge bias")
        assert phase_description(student) == "Phase II, research project on Judge bias"


# ---------------------------------------------------------------------------
# Voice notes
# ---------------------------------------------------------------------------

class TestSendVoiceNote:

    @pytest.fixture
    def assets_dir(self, tmp_path, monkeypatch):
        (tmp_path / "phase1-motivation.mp3").write_bytes(b"ID3")
        monkeypatch.setattr(get_settings(), "voice_notes_dir", str(tmp_path))
        return tmp_path

    def test_released_mentor_message(self, db_session, student, storage, assets_dir):
        message = EngagementService(db_session, storage=storage).send_voice_note(student.id)

        assert message.role == "mentor"
        assert message.status == "released"
        assert message.attachments[0]["mime_type"] == "audio/mpeg"
        assert message.attachments[0]["storage_path"] in storage.objects
        assert db_session.query(Draft).count() == 0

    def test_blank_type(self, db_session, student, storage):
        with pytest.raises(InvalidInputException):
            EngagementService(db_session, storage=storage).send_voice_note(student.id, " ")

    def test_missing_asset(self, db_session, student, storage, tmp_path, monkeypatch):
        monkeypatch.setattr(get_settings(), "voice_notes_dir", str(tmp_path / "none"))
        with pytest.raises(VoiceNoteNotFoundException):
            EngagementService(db_session, storage=storage).send_voice_note(student.id)
        assert db_session.query(Message).count() == 0


# ---------------------------------------------------------------------------
# Background jobs
# ---------------------------------------------------------------------------

class TestBackground:

    def test_generate_draft_job_uses_configured_agent(self, db_session):
        agent = MagicMock()
        with patch("mentorship.services.agent_service.MentorAgentService.from_settings",
                   return_value=agent) as from_settings, \
                patch("shared.services.storage_service.get_storage", return_value="storage"):
            generate_draft_job(db_session, "s1", "m1")

        from_settings.assert_called_once_with(db_session, storage="storage")
        agent.generate_draft.assert_called_once_with("s1", "m1")

    def test_run_in_background_closes_session_on_failure(self):
        session = MagicMock()
        manager = MagicMock()
        manager.session_factory.return_value = session

        def boom(db, value):
            raise UpstreamUnavailableException("Language model", RuntimeError(value))

        with patch("mentorship.services.background.get_db_manager", return_value=manager):
            thread = run_in_background(boom, "down")
            thread.join(timeout=5)

        session.rollback.assert_called_once()
        session.close.assert_called_once()
