"""Tool contract: definition, per-call context and structured result."""
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session as DBSession


class ToolResult(BaseModel):
    """Outcome of one tool invocation, recorded verbatim on the draft."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)


@dataclass(frozen=True)
class ToolContext:
    """
    Read-only context passed to every handler.

    Handlers use `db` and the collaborators for their side effects, but never
    rebind anything on the context itself.
    """
    student_id: str
    phase: str
    db: DBSession
    storage: Any = None
    llm: Any = None
    settings: Any = None


Handler = Callable[[dict, ToolContext], ToolResult]


@dataclass
class ToolDefinition:
    """A named capability the model may request mid-turn."""
    name: str
    description: str
    handler: Handler
    properties: dict[str, dict] = field(default_factory=dict)
    required: list[str] = field(default_factory=list)

    def input_schema(self) -> dict:
        return {
            "type": "object",
            "properties": self.properties,
            "required": list(self.required),
        }

    def to_anthropic(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema(),
        }


def missing_parameter(name: str) -> ToolResult:
    return ToolResult.fail(f"Missing required parameter: {name}")


def require(tool_input: dict, *names: str) -> Optional[ToolResult]:
    """
    Return a failure result for the first absent or blank required input, or
    None when everything needed is present. Call before any side effect.
    """
    for name in names:
        value = tool_input.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return missing_parameter(name)
        if isinstance(value, (list, dict)) and not value:
            return missing_parameter(name)
    return None
