"""Roadmap tools (Phase II): generate the research roadmap and look up milestones."""
from mentorship.exceptions import ToolExecutionError
from mentorship.services.roadmap_service import RoadmapService, find_milestone
from mentorship.tools.types import ToolContext, ToolDefinition, ToolResult, missing_parameter, require
from shared.repositories import StudentRepository
from shared.utils.constants import DEFAULT_ROADMAP_WEEKS, ROADMAP_DURATIONS
from shared.utils.exceptions import BootcampException

NO_ROADMAP = "No roadmap found. Generate a roadmap first using the generate_roadmap tool."


def generate_roadmap(tool_input: dict, context: ToolContext) -> ToolResult:
    invalid = require(tool_input, "topic")
    if invalid:
        return invalid
    if not isinstance(tool_input["topic"], str):
        return missing_parameter("topic")

    duration = tool_input.get("duration_weeks", DEFAULT_ROADMAP_WEEKS)
    if duration not in ROADMAP_DURATIONS:
        return ToolResult.fail(f"Invalid parameter: duration_weeks must be one of {list(ROADMAP_DURATIONS)}")

    service = RoadmapService(context.db, llm=None, storage=context.storage)
    try:
        roadmap = service.generate(
            context.student_id,
            tool_input["topic"],
            duration_weeks=duration,
            custom_requirements=tool_input.get("custom_requirements"),
        )
    except ToolExecutionError as e:
        return ToolResult.fail(e.reason)
    except BootcampException as e:
        return ToolResult.fail(str(e))

    milestones = roadmap.content.get("milestones") or []
    return ToolResult.ok({
        "roadmap_id": roadmap.id,
        "topic": roadmap.topic,
        "pdf_url": roadmap.pdf_url,
        "milestone_count": len(milestones),
        "duration": f"{duration} weeks",
        "download_link": f"[Download Your Research Roadmap (PDF)]({roadmap.pdf_url})",
        "message": (
            f"Research roadmap generated successfully for \"{roadmap.topic}\". "
            f"Download it here: {roadmap.pdf_url}"
        ),
    })


def get_milestone_details(tool_input: dict, context: ToolContext) -> ToolResult:
    number = tool_input.get("milestone_number")
    if number is None or isinstance(number, bool) or not isinstance(number, int):
        return missing_parameter("milestone_number")

    roadmap = RoadmapService(context.db).latest(context.student_id)
    if not roadmap:
        return ToolResult.fail(NO_ROADMAP)

    milestone = find_milestone(roadmap, number)
    if not milestone:
        return ToolResult.fail(f"Milestone {number} not found in the roadmap.")

    student = StudentRepository(context.db).get_by_id(context.student_id)
    return ToolResult.ok({
        "milestone": milestone,
        "is_current_milestone": bool(student and student.current_milestone == number),
        "roadmap_topic": roadmap.topic,
        "pdf_url": roadmap.pdf_url,
    })


def get_roadmap_status(tool_input: dict, context: ToolContext) -> ToolResult:
    roadmap = RoadmapService(context.db).latest(context.student_id)
    if not roadmap:
        return ToolResult.ok({
            "has_roadmap": False,
            "message": "No roadmap found. Help the student choose a research topic and generate a roadmap.",
        })
    return ToolResult.ok({
        "has_roadmap": True,
        "topic": roadmap.topic,
        "pdf_url": roadmap.pdf_url,
        "accepted": roadmap.accepted,
        "milestone_count": len(roadmap.content.get("milestones") or []),
        "created_at": roadmap.created_at.isoformat() if roadmap.created_at else None,
        "message": f"Roadmap exists for \"{roadmap.topic}\". PDF available for download.",
    })


ROADMAP_TOOLS = [
    ToolDefinition(
        name="generate_roadmap",
        description=(
            "Generate a detailed research roadmap PDF for the student's chosen topic. "
            "Use once the student has settled on a research topic. Takes a minute or two."
        ),
        handler=generate_roadmap,
        properties={
            "topic": {
                "type": "string",
                "description": "Research topic title or catalog id (e.g. \"1.2\")",
            },
            "duration_weeks": {
                "type": "integer",
                "enum": list(ROADMAP_DURATIONS),
                "description": "Roadmap length in weeks (default 10)",
            },
            "custom_requirements": {
                "type": "string",
                "description": "Extra constraints from the student (datasets, compute, venue)",
            },
        },
        required=["topic"],
    ),
    ToolDefinition(
        name="get_milestone_details",
        description="Get the objectives, reading list and deliverables of one roadmap milestone.",
        handler=get_milestone_details,
        properties={"milestone_number": {"type": "integer", "description": "Milestone number (1-5)"}},
        required=["milestone_number"],
    ),
    ToolDefinition(
        name="get_roadmap_status",
        description="Check whether the student already has a research roadmap.",
        handler=get_roadmap_status,
    ),
]
