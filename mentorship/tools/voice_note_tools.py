"""Voice note tools: send a pre-recorded encouragement note."""
from mentorship.services.voice_note_service import NOTE_TYPES, VoiceNoteService, available_notes
from mentorship.tools.types import ToolContext, ToolDefinition, ToolResult, require
from shared.utils.exceptions import NotFoundException, UpstreamUnavailableException


def send_voice_note(tool_input: dict, context: ToolContext) -> ToolResult:
    invalid = require(tool_input, "note_type")
    if invalid:
        return invalid
    note_type = str(tool_input["note_type"])
    if note_type not in NOTE_TYPES:
        return ToolResult.fail(f"Invalid parameter: note_type must be one of {list(NOTE_TYPES)}")

    service = VoiceNoteService(context.db, context.storage)
    try:
        delivered = service.deliver(context.student_id, context.phase, note_type, tool_input.get("reason"))
    except (NotFoundException, UpstreamUnavailableException) as e:
        return ToolResult.fail(str(e))

    delivered["message"] = (
        f"Voice note \"{delivered['display_name']}\" has been attached. "
        "The student can listen to it with the audio player."
    )
    return ToolResult.ok(delivered)


def get_available_voice_notes(tool_input: dict, context: ToolContext) -> ToolResult:
    notes = available_notes(context.phase)
    return ToolResult.ok({
        "phase": context.phase,
        "available_notes": notes,
        "message": f"{len(notes)} voice note(s) available for {context.phase} students.",
    })


VOICE_NOTE_TOOLS = [
    ToolDefinition(
        name="send_voice_note",
        description=(
            "Send a pre-recorded motivational voice note from the mentor. Use when the student "
            "has been inactive for 7+ days, seems discouraged, or needs extra encouragement."
        ),
        handler=send_voice_note,
        properties={
            "note_type": {"type": "string", "enum": list(NOTE_TYPES), "description": "The type of voice note to send"},
            "reason": {"type": "string", "description": "Brief reason for sending the voice note"},
        },
        required=["note_type"],
    ),
    ToolDefinition(
        name="get_available_voice_notes",
        description="List the voice notes that can be sent to this student.",
        handler=get_available_voice_notes,
    ),
]
