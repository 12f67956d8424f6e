"""Progress tools: read and advance the student's curriculum position."""
from mentorship.services.student_service import StudentService
from mentorship.tools.types import ToolContext, ToolDefinition, ToolResult, require
from shared.models.domain import ProgressStatus
from shared.utils.constants import TOTAL_MILESTONES, TOTAL_TOPICS
from shared.utils.exceptions import BootcampException


def _optional_int(tool_input: dict, name: str, upper: int):
    """(value, error). Validates range without touching storage."""
    raw = tool_input.get(name)
    if raw is None:
        return None, None
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None, ToolResult.fail(f"Invalid parameter: {name} must be an integer")
    if not 1 <= value <= upper:
        return None, ToolResult.fail(f"Invalid parameter: {name} must be between 1 and {upper}")
    return value, None


def get_student_progress(tool_input: dict, context: ToolContext) -> ToolResult:
    try:
        return ToolResult.ok(StudentService(context.db).progress_summary(context.student_id))
    except BootcampException as e:
        return ToolResult.fail(str(e))


def update_student_progress(tool_input: dict, context: ToolContext) -> ToolResult:
    topic_index, error = _optional_int(tool_input, "topic_index", TOTAL_TOPICS)
    if error:
        return error
    milestone, error = _optional_int(tool_input, "milestone", TOTAL_MILESTONES)
    if error:
        return error

    status = tool_input.get("status")
    if status is not None and status not in {s.value for s in ProgressStatus}:
        return ToolResult.fail(f"Invalid parameter: status '{status}'")
    notes = tool_input.get("notes")

    try:
        StudentService(context.db).update_progress(
            context.student_id,
            topic_index=topic_index,
            milestone=milestone,
            status=status,
            notes=notes,
        )
    except BootcampException as e:
        return ToolResult.fail(str(e))

    return ToolResult.ok({
        "message": "Progress updated successfully",
        "updates": {"topic_index": topic_index, "milestone": milestone, "status": status, "notes": notes},
    })


def transition_to_phase2(tool_input: dict, context: ToolContext) -> ToolResult:
    invalid = require(tool_input, "research_topic")
    if invalid:
        return invalid
    research_topic = str(tool_input["research_topic"]).strip()

    try:
        student = StudentService(context.db).transition_to_phase2(context.student_id, research_topic)
    except BootcampException as e:
        return ToolResult.fail(str(e))

    return ToolResult.ok({
        "message": "Successfully transitioned to Phase II",
        "research_topic": student.research_topic,
        "current_milestone": student.current_milestone,
    })


PROGRESS_TOOLS = [
    ToolDefinition(
        name="get_student_progress",
        description="Get the current progress of the student including phase, topic/milestone, and status.",
        handler=get_student_progress,
    ),
    ToolDefinition(
        name="update_student_progress",
        description="Update student progress. Use when the student completes a topic or milestone.",
        handler=update_student_progress,
        properties={
            "topic_index": {"type": "integer", "description": f"Current topic index 1-{TOTAL_TOPICS} (Phase I)"},
            "milestone": {"type": "integer", "description": f"Current milestone 1-{TOTAL_MILESTONES} (Phase II)"},
            "status": {
                "type": "string",
                "enum": [s.value for s in ProgressStatus],
                "description": "Progress status",
            },
            "notes": {"type": "string", "description": "Progress notes"},
        },
    ),
    ToolDefinition(
        name="transition_to_phase2",
        description="Transition the student from Phase I to Phase II after they finish the video curriculum.",
        handler=transition_to_phase2,
        properties={"research_topic": {"type": "string", "description": "Chosen research topic"}},
        required=["research_topic"],
    ),
]
