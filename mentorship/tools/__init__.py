"""Tools the mentor agent can call mid-turn, grouped by curriculum phase."""
from mentorship.tools.catalog_tools import RESEARCH_TOPIC_TOOLS, VIDEO_CATALOG_TOOLS
from mentorship.tools.memory_tools import MEMORY_TOOLS
from mentorship.tools.progress_tools import PROGRESS_TOOLS
from mentorship.tools.registry import ToolRegistry
from mentorship.tools.roadmap_tools import ROADMAP_TOOLS
from mentorship.tools.types import ToolContext, ToolDefinition, ToolResult
from mentorship.tools.voice_note_tools import VOICE_NOTE_TOOLS
from shared.models.domain import Phase


def build_tool_registry(phase: str) -> ToolRegistry:
    """Registry with the tools available to a student in `phase`."""
    if phase == Phase.PHASE2.value:
        groups = [RESEARCH_TOPIC_TOOLS, PROGRESS_TOOLS, MEMORY_TOOLS, ROADMAP_TOOLS, VOICE_NOTE_TOOLS]
    else:
        groups = [VIDEO_CATALOG_TOOLS, PROGRESS_TOOLS, MEMORY_TOOLS, VOICE_NOTE_TOOLS]

    registry = ToolRegistry()
    for group in groups:
        registry.register_all(group)
    return registry


__all__ = [
    "ToolContext",
    "ToolDefinition",
    "ToolRegistry",
    "ToolResult",
    "build_tool_registry",
]
