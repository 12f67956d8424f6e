"""Memory tools: read and write long-term facts about the student."""
from mentorship.services.memory_service import MemoryService
from mentorship.tools.types import ToolContext, ToolDefinition, ToolResult, missing_parameter
from shared.utils.exceptions import StudentNotFoundException


def get_student_memory(tool_input: dict, context: ToolContext) -> ToolResult:
    memory = MemoryService(context.db)
    key = tool_input.get("key")

    if not key:
        try:
            return ToolResult.ok({"profile": memory.get_profile(context.student_id)})
        except StudentNotFoundException as e:
            return ToolResult.fail(str(e))

    return ToolResult.ok({"key": key, "value": memory.get(context.student_id, key)})


def save_student_memory(tool_input: dict, context: ToolContext) -> ToolResult:
    key = tool_input.get("key")
    value = tool_input.get("value")
    append = bool(tool_input.get("append"))

    if not key or not isinstance(key, str):
        return missing_parameter("key")
    if value is None:
        return missing_parameter("value")

    memory = MemoryService(context.db)
    if append:
        memory.append(context.student_id, key, value)
    else:
        memory.set(context.student_id, key, value)

    return ToolResult.ok({
        "message": f"Memory {'appended to' if append else 'saved for'} key: {key}",
        "key": key,
        "value": value,
    })


MEMORY_TOOLS = [
    ToolDefinition(
        name="get_student_memory",
        description="Retrieve information from long-term memory about the student.",
        handler=get_student_memory,
        properties={
            "key": {
                "type": "string",
                "description": (
                    "Memory key (e.g. 'profile.interests', 'profile.learning_style', "
                    "'profile.challenges'). If not specified, returns the full student profile."
                ),
            },
        },
    ),
    ToolDefinition(
        name="save_student_memory",
        description="Save important information about the student to long-term memory for future reference.",
        handler=save_student_memory,
        properties={
            "key": {"type": "string", "description": "Memory key"},
            "value": {"type": "string", "description": "Value to store"},
            "append": {"type": "boolean", "description": "If true, append to the existing list"},
        },
        required=["key", "value"],
    ),
]
