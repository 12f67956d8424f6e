"""
Tool registry.

Tools are registered by name. Duplicate names are refused at registration time;
unknown names and handler failures become error results at invocation time, so
nothing raised by a tool ever reaches the draft pipeline.
"""
import json
import logging
import time
from typing import Iterable, Optional

from mentorship.exceptions import ToolError, ToolRegistrationError
from mentorship.tools.types import ToolContext, ToolDefinition, ToolResult

logger = logging.getLogger(__name__)


class ToolRegistry:

    def __init__(self, tools: Optional[Iterable[ToolDefinition]] = None):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            raise ToolRegistrationError(tool.name)
        self._tools[tool.name] = tool

    def register_all(self, tools: Iterable[ToolDefinition]) -> None:
        for tool in tools:
            self.register(tool)

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def to_anthropic_tools(self) -> list[dict]:
        """Tool catalog in the shape the Messages API expects."""
        return [tool.to_anthropic() for tool in self._tools.values()]

    def invoke(self, name: str, tool_input: Optional[dict], context: ToolContext) -> ToolResult:
        """Run a tool by name. Never raises."""
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"Model requested unknown tool '{name}'")
            return ToolResult.fail(f"Tool {name} not found")

        start_time = time.time()
        try:
            result = tool.handler(dict(tool_input or {}), context)
        except ToolError as e:
            logger.error(f"Tool {name} failed: {e.message}")
            result = ToolResult.fail(e.reason)
        except Exception as e:
            logger.error(f"Tool {name} raised unexpectedly: {e}", exc_info=True)
            result = ToolResult.fail(str(e) or type(e).__name__)

        logger.info(json.dumps({
            "step": "TOOL_CALL",
            "tool": name,
            "student_id": context.student_id,
            "success": result.success,
            "error": result.error,
            "duration_ms": int((time.time() - start_time) * 1000),
        }))
        return result
