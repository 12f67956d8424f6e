"""
Mentor agent: turns a student message into a pending draft.

One turn = assemble context, run the tool loop against the agent model,
post-process the reply and hand it to DraftService. The reply is never
visible to the student until a mentor releases the draft.
"""
import base64
import json
import logging
import time
from typing import Optional
from sqlalchemy.orm import Session as DBSession

from config import get_settings
from mentorship.exceptions import LLMServiceError
from mentorship.services.context_service import AssembledContext, ContextService
from mentorship.services.draft_service import DraftService
from mentorship.services.memory_service import MemoryService
from mentorship.tools import ToolContext, ToolRegistry, build_tool_registry
from mentorship.utils.text import strip_markdown_emphasis
from shared.models.domain import Attachment, MessageRole
from shared.models.entities import Draft, Message
from shared.repositories import ConversationRepository, MessageRepository
from shared.services.llm_service import LLMService
from shared.services.storage_service import StorageService
from shared.utils.constants import (
    AGENT_MAX_TOKENS,
    DEFAULT_SUBJECT,
    FALLBACK_REPLY,
    INLINE_DOCUMENT_TYPES,
    INLINE_IMAGE_TYPES,
    MAX_INLINE_ATTACHMENT_BYTES,
)
from shared.utils.exceptions import (
    ConversationNotFoundException,
    InvalidInputException,
    UpstreamUnavailableException,
)
from shared.utils.threads import with_subject

logger = logging.getLogger("mentorship.agent")


class AgentTurn:
    """Outcome of the tool loop, before it becomes a draft."""

    def __init__(self):
        self.text = ""
        self.tool_calls: list[dict] = []
        self.attachments: list[dict] = []
        self.model_calls = 0


def reply_subject(message: Optional[Message]) -> str:
    if message is not None and message.subject:
        return message.subject
    return DEFAULT_SUBJECT


def finalize_reply(text: str, subject: str) -> str:
    """Strip emphasis markers, fall back when empty and make the reply join the student's thread."""
    body = strip_markdown_emphasis(text or "").strip() or FALLBACK_REPLY
    return with_subject(subject, body)


class MentorAgentService:
    """Drafts replies for a student with the tool-using agent model."""

    def __init__(
        self,
        db: DBSession,
        llm: LLMService,
        storage: Optional[StorageService] = None,
        max_iterations: Optional[int] = None,
    ):
        self.db = db
        self.llm = llm
        self.storage = storage
        self.max_iterations = max_iterations or get_settings().agent_max_tool_iterations
        self.context_service = ContextService(db)
        self.conversations = ConversationRepository(db)
        self.messages = MessageRepository(db)

    @classmethod
    def from_settings(cls, db: DBSession, storage: Optional[StorageService] = None) -> "MentorAgentService":
        settings = get_settings()
        llm = LLMService.from_settings(settings, "anthropic", settings.agent_model)
        return cls(db, llm, storage)

    # ─── Attachments ──────────────────────────────────────────────────

    def _inline_blocks(self, attachments: list[Attachment]) -> list[dict]:
        """Image/PDF content blocks for the model. Other types are only described in context."""
        blocks = []
        for attachment in attachments:
            if attachment.mime_type in INLINE_IMAGE_TYPES:
                block_type = "image"
            elif attachment.mime_type in INLINE_DOCUMENT_TYPES:
                block_type = "document"
            else:
                continue
            if not attachment.storage_path or self.storage is None:
                continue

            try:
                data = self.storage.download(attachment.storage_path)
            except Exception as e:
                raise UpstreamUnavailableException("Blob storage", e) from e
            if len(data) > MAX_INLINE_ATTACHMENT_BYTES:
                logger.warning(f"Skipping inline attachment {attachment.filename}: {len(data)} bytes")
                continue

            blocks.append({
                "type": block_type,
                "source": {
                    "type": "base64",
                    "media_type": attachment.mime_type,
                    "data": base64.b64encode(data).decode("ascii"),
                },
            })
        return blocks

    def _conversation_turns(
        self,
        context: AssembledContext,
        trigger: Optional[Message],
        attachments: list[Attachment],
    ) -> list[dict]:
        turns = [dict(turn) for turn in context.history]
        # The Messages API expects the conversation to open with a user turn
        while turns and turns[0]["role"] != "user":
            turns.pop(0)

        if not turns or turns[-1]["role"] != "user":
            text = trigger.content if trigger is not None else "Please continue."
            turns.append({"role": "user", "content": text})

        blocks = self._inline_blocks(attachments)
        if blocks:
            last = turns[-1]
            last["content"] = [{"type": "text", "text": last["content"]}] + blocks
        return turns

    # ─── Tool loop ────────────────────────────────────────────────────

    def run_tool_loop(
        self,
        system: str,
        turns: list[dict],
        registry: ToolRegistry,
        tool_context: ToolContext,
    ) -> AgentTurn:
        """
        Call the model until it stops asking for tools or the iteration cap is
        hit. If the last call produced no text, one extra tool-free call asks
        for the final reply.

        Raises:
            LLMServiceError: the agent model failed
        """
        result = AgentTurn()
        tools = registry.to_anthropic_tools()

        for _ in range(self.max_iterations):
            response = self.llm.converse(system, turns, tools=tools, max_tokens=AGENT_MAX_TOKENS)
            result.model_calls += 1
            result.text = response.get("text") or ""

            tool_uses = response.get("tool_uses") or []
            if not tool_uses:
                break

            turns.append({"role": "assistant", "content": response.get("content") or []})
            tool_results = []
            for use in tool_uses:
                outcome = registry.invoke(use["name"], use.get("input"), tool_context)
                outcome_dict = outcome.to_dict()
                result.tool_calls.append({"name": use["name"], "input": use.get("input") or {}, "result": outcome_dict})
                attachment = (outcome.data or {}).get("attachment") if isinstance(outcome.data, dict) else None
                if outcome.success and attachment:
                    result.attachments.append(attachment)
                tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": use["id"],
                    "content": json.dumps(outcome_dict, default=str),
                    "is_error": not outcome.success,
                })
            turns.append({"role": "user", "content": tool_results})

        if not result.text.strip():
            response = self.llm.converse(system, turns, tools=None, max_tokens=AGENT_MAX_TOKENS)
            result.model_calls += 1
            result.text = response.get("text") or ""

        return result

    # ─── Entry point ──────────────────────────────────────────────────

    def generate_draft(self, student_id: str, message_id: Optional[str] = None) -> Draft:
        """
        Draft a reply to a student's message (the latest one if `message_id` is None).

        Raises:
            StudentNotFoundException: unknown student
            ConversationNotFoundException: student has never written
            InvalidInputException: message id does not belong to the student's conversation
            UpstreamUnavailableException: agent model or blob storage failed
        """
        start_time = time.time()
        conversation = self.conversations.get_by_student(student_id)
        if not conversation:
            raise ConversationNotFoundException(f"for student {student_id}")

        if message_id:
            trigger = self.messages.get_by_id(message_id)
            if trigger is None or trigger.conversation_id != conversation.id:
                raise InvalidInputException("message_id", f"Message {message_id} is not in this conversation")
        else:
            recent = self.messages.list_recent(conversation.id, 1)
            trigger = recent[0] if recent and recent[0].role == MessageRole.STUDENT.value else None

        attachments = [Attachment.model_validate(a) for a in (trigger.attachments or [])] if trigger else []
        context = self.context_service.assemble(student_id, attachments=attachments)
        registry = build_tool_registry(context.phase)

        logger.info(json.dumps({
            "step": "AGENT_TURN",
            "status": "starting",
            "student_id": student_id,
            "phase": context.phase,
            "history_turns": len(context.history),
            "tools": registry.names,
        }))

        tool_context = ToolContext(
            student_id=student_id,
            phase=context.phase,
            db=self.db,
            storage=self.storage,
            llm=self.llm,
            settings=get_settings(),
        )
        turns = self._conversation_turns(context, trigger, attachments)

        try:
            turn = self.run_tool_loop(context.system_prompt, turns, registry, tool_context)
        except LLMServiceError as e:
            logger.error(json.dumps({"step": "AGENT_TURN", "status": "failed", "student_id": student_id, "error": str(e)}))
            raise UpstreamUnavailableException("Language model", e) from e

        content = finalize_reply(turn.text, reply_subject(trigger))
        draft = DraftService(self.db).create_draft(
            conversation.id,
            content,
            tool_calls=turn.tool_calls,
            attachments=turn.attachments,
        )

        try:
            MemoryService(self.db).record_interaction(student_id)
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Failed to record interaction for student {student_id}: {e}")

        logger.info(json.dumps({
            "step": "AGENT_TURN",
            "status": "complete",
            "student_id": student_id,
            "draft_id": draft.id,
            "model_calls": turn.model_calls,
            "tool_calls": [call["name"] for call in turn.tool_calls],
            "duration_ms": int((time.time() - start_time) * 1000),
        }))
        return draft
