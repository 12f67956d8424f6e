"""Unit tests for mentorship/services/draft_service.py"""
from datetime import datetime, timedelta

import pytest

from mentorship.services.draft_service import DraftService, build_tool_call_records
from shared.models.entities import Draft, Message
from shared.repositories import ConversationRepository, MessageRepository
from shared.utils.exceptions import (
    ConversationNotFoundException,
    DraftNotFoundException,
    InvalidDraftTransitionException,
    InvalidInputException,
)


def _student_message(db, conversation, content="Subject: Week 2 question\n\nHow do I start?", minutes_ago=5):
    message = MessageRepository(db).create(
        conversation.id, "student", content,
        created_at=datetime.utcnow() - timedelta(minutes=minutes_ago),
    )
    db.commit()
    return message


ATTACHMENT = {
    "filename": "notes.pdf",
    "url": "https://files.test/attachments/s1/notes.pdf",
    "mime_type": "application/pdf",
    "storage_path": "attachments/s1/notes.pdf",
}


# ---------------------------------------------------------------------------
# build_tool_call_records
# ---------------------------------------------------------------------------

class TestBuildToolCallRecords:

    def test_none_when_no_calls(self):
        assert build_tool_call_records(None) is None
        assert build_tool_call_records([]) is None

    def test_aligns_results_by_position(self):
        records = build_tool_call_records(
            [{"name": "a", "input": {"x": 1}}, {"name": "b"}],
            [{"success": True}, {"success": False, "error": "boom"}],
        )
        assert records == [
            {"name": "a", "input": {"x": 1}, "result": {"success": True}},
            {"name": "b", "input": {}, "result": {"success": False, "error": "boom"}},
        ]

    def test_own_result_wins_over_positional(self):
        records = build_tool_call_records(
            [{"name": "a", "input": {}, "result": {"success": True, "data": 1}}],
            [{"success": False}],
        )
        assert records[0]["result"] == {"success": True, "data": 1}


# ---------------------------------------------------------------------------
# create_draft
# ---------------------------------------------------------------------------

class TestCreateDraft:

    def test_creates_pending_draft(self, db_session, conversation):
        draft = DraftService(db_session).create_draft(
            conversation.id,
            "Subject: Hello\n\nWelcome aboard",
            tool_calls=[{"name": "get_student_progress", "input": {}}],
            tool_results=[{"success": True, "data": {"current_phase": "phase1"}}],
            attachments=[ATTACHMENT],
        )

        assert draft.status == "pending"
        assert draft.tool_calls[0]["name"] == "get_student_progress"
        assert draft.tool_calls[0]["result"]["success"] is True
        assert draft.attachments == [ATTACHMENT]

    def test_draft_never_appears_in_message_log(self, db_session, conversation):
        DraftService(db_session).create_draft(conversation.id, "Pending reply")
        assert db_session.query(Message).count() == 0

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_empty_content_rejected(self, db_session, conversation, content):
        with pytest.raises(InvalidInputException):
            DraftService(db_session).create_draft(conversation.id, content)
        assert db_session.query(Draft).count() == 0

    def test_unknown_conversation(self, db_session):
        with pytest.raises(ConversationNotFoundException):
            DraftService(db_session).create_draft("missing", "Hello")

    def test_drafts_accumulate_per_conversation(self, db_session, conversation):
        service = DraftService(db_session)
        first = service.create_draft(conversation.id, "Subject: LoRA\n\nReply to the first question")
        second = service.create_draft(conversation.id, "Subject: RAG\n\nReply to the second question")

        pending = service.list_pending_drafts(conversation.id)

        assert [d.id for d in pending] == [second.id, first.id]
        db_session.refresh(first)
        assert first.status == "pending"
        assert first.rejection_reason is None

    def test_releasing_one_draft_leaves_the_other_pending(self, db_session, conversation):
        service = DraftService(db_session)
        first = service.create_draft(conversation.id, "First reply")
        second = service.create_draft(conversation.id, "Second reply")

        service.approve(second.id)

        assert [d.id for d in service.list_pending_drafts(conversation.id)] == [first.id]


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:

    def test_get_unknown_draft(self, db_session):
        with pytest.raises(DraftNotFoundException):
            DraftService(db_session).get_draft("nope")

    def test_list_pending_for_student_without_conversation(self, db_session, student):
        assert DraftService(db_session).list_pending_for_student(student.id) == []

    def test_list_pending_system_wide(self, db_session, conversation, make_student):
        other = make_student("Ben Lee", "ben@example.com")
        other_conversation = ConversationRepository(db_session).get_or_create(other.id)

        service = DraftService(db_session)
        service.create_draft(conversation.id, "For Asha")
        service.create_draft(other_conversation.id, "For Ben")

        assert len(service.list_pending_drafts()) == 2
        assert len(service.list_pending_for_student(other.id)) == 1

    def test_triage_annotates_student_and_original_message(self, db_session, student, conversation):
        original = _student_message(db_session, conversation)
        draft = DraftService(db_session).create_draft(conversation.id, "Subject: Week 2 question\n\nStart here")

        rows = DraftService(db_session).list_triage()

        assert len(rows) == 1
        row = rows[0]
        assert row["id"] == draft.id
        assert row["student_id"] == student.id
        assert row["student_name"] == "Asha Rao"
        assert row["student_email"] == "asha@example.com"
        assert row["original_message"] == original.content

    def test_triage_without_student_message(self, db_session, conversation):
        DraftService(db_session).create_draft(conversation.id, "Proactive check in")
        row = DraftService(db_session).list_triage()[0]
        assert row["original_message"] is None
        assert row["original_message_at"] is None


# ---------------------------------------------------------------------------
# approve / edit_and_approve
# ---------------------------------------------------------------------------

class TestApprove:

    def test_approve_promotes_draft_to_message(self, db_session, conversation, mentor):
        service = DraftService(db_session)
        draft = service.create_draft(
            conversation.id, "Subject: Week 2 question\n\nWatch lesson 2.1 first.",
            tool_calls=[{"name": "search_video_catalog", "input": {"query": "attention"}}],
        )

        message = service.approve(draft.id, reviewer_id=mentor.id)

        assert message.role == "agent"
        assert message.status == "released"
        assert message.content == draft.content
        assert message.draft_id == draft.id
        assert message.subject == "Week 2 question"
        assert message.thread_key == "week 2 question"
        assert message.tool_calls[0]["name"] == "search_video_catalog"

        db_session.refresh(draft)
        assert draft.status == "released"
        assert draft.released_message_id == message.id
        assert draft.reviewed_by == mentor.id
        assert draft.reviewed_at is not None
        assert service.list_pending_drafts(conversation.id) == []

    def test_approve_twice_returns_same_message(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")

        first = service.approve(draft.id)
        second = service.approve(draft.id)

        assert first.id == second.id
        assert db_session.query(Message).count() == 1

    def test_attachments_after_release_conflict(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")
        message = service.approve(draft.id)

        with pytest.raises(InvalidDraftTransitionException) as exc_info:
            service.approve(draft.id, attachments=[ATTACHMENT])

        assert exc_info.value.to_http_exception().status_code == 409
        db_session.refresh(message)
        assert message.attachments == []

    def test_approve_merges_attachments_without_duplicates(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply", attachments=[ATTACHMENT])
        extra = {"filename": "plan.png", "url": "https://files.test/plan.png", "mime_type": "image/png"}

        message = service.approve(draft.id, attachments=[ATTACHMENT, extra])

        assert [a["filename"] for a in message.attachments] == ["notes.pdf", "plan.png"]

    def test_approve_rejected_draft_is_not_found(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")
        service.reject(draft.id, "off tone")

        with pytest.raises(DraftNotFoundException):
            service.approve(draft.id)
        assert db_session.query(Message).count() == 0

    def test_approve_unknown_draft(self, db_session):
        with pytest.raises(DraftNotFoundException):
            DraftService(db_session).approve("missing")

    def test_edit_and_approve_keeps_subject(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Subject: Week 2 question\n\nOriginal text")

        message = service.edit_and_approve(draft.id, "Rewritten by the mentor")

        assert message.content == "Subject: Week 2 question\n\nRewritten by the mentor"
        assert message.thread_key == "week 2 question"
        db_session.refresh(draft)
        assert draft.content == message.content

    def test_edit_with_own_subject_is_kept(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Subject: Old\n\nOriginal")

        message = service.edit_and_approve(draft.id, "Subject: New\n\nNew body")

        assert message.subject == "New"

    def test_edit_released_draft_conflicts(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")
        service.approve(draft.id)

        with pytest.raises(InvalidDraftTransitionException) as exc_info:
            service.edit_and_approve(draft.id, "Too late")
        assert exc_info.value.to_http_exception().status_code == 409

    def test_edit_with_empty_content(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")
        with pytest.raises(InvalidInputException):
            service.edit_and_approve(draft.id, "  ")
        assert service.get_draft(draft.id).status == "pending"


# ---------------------------------------------------------------------------
# reject / update
# ---------------------------------------------------------------------------

class TestReject:

    def test_reject_keeps_row_but_hides_it(self, db_session, conversation, mentor):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")

        service.reject(draft.id, "Not accurate", reviewer_id=mentor.id)

        row = db_session.query(Draft).filter(Draft.id == draft.id).one()
        assert row.status == "rejected"
        assert row.rejection_reason == "Not accurate"
        assert row.reviewed_by == mentor.id
        with pytest.raises(DraftNotFoundException):
            service.get_draft(draft.id)
        assert service.list_pending_drafts() == []

    def test_reject_twice_is_a_no_op(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")
        service.reject(draft.id)
        service.reject(draft.id)

    def test_reject_released_draft_conflicts(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")
        service.approve(draft.id)

        with pytest.raises(InvalidDraftTransitionException):
            service.reject(draft.id)
        assert db_session.query(Message).count() == 1

    def test_reject_unknown(self, db_session):
        with pytest.raises(DraftNotFoundException):
            DraftService(db_session).reject("missing")


class TestUpdateDraftContent:

    def test_updates_pending_draft(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")

        updated = service.update_draft_content(draft.id, "Better reply")

        assert updated.content == "Better reply"
        assert updated.status == "pending"
        assert db_session.query(Message).count() == 0

    def test_update_released_draft_conflicts(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Reply")
        service.approve(draft.id)

        with pytest.raises(InvalidDraftTransitionException):
            service.update_draft_content(draft.id, "Changed")

    def test_update_keeps_subject(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Subject: Python help\n\nOld body")

        updated = service.update_draft_content(draft.id, "Better body")

        assert updated.content == "Subject: Python help\n\nBetter body"

    def test_subject_survives_update_then_edit(self, db_session, conversation):
        service = DraftService(db_session)
        draft = service.create_draft(conversation.id, "Subject: Python help\n\nOld body")

        service.update_draft_content(draft.id, "Better body")
        message = service.edit_and_approve(draft.id, "Final body")

        assert message.content == "Subject: Python help\n\nFinal body"
        assert message.thread_key == "python help"
