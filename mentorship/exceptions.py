"""
Custom Exception Hierarchy for the Mentor Agent

Exception Hierarchy:
    MentorAgentError (base)
    ├── LLMError
    │   └── LLMServiceError
    ├── ToolError
    │   ├── ToolRegistrationError
    │   └── ToolExecutionError
    └── PromptError
        └── PromptTemplateError

None of these cross the draft boundary: tool errors become error results,
LLM errors are translated to UpstreamUnavailableException by the agent.
"""

from typing import Optional


class MentorAgentError(Exception):
    """Base exception for all mentor agent errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# LLM Errors

class LLMError(MentorAgentError):
    """Base exception for LLM-related errors."""
    pass


class LLMServiceError(LLMError):
    """Raised when LLM API call fails."""

    def __init__(self, message: str, model_name: Optional[str] = None, attempts: Optional[int] = None):
        super().__init__(message)
        self.model_name = model_name
        self.attempts = attempts


# Tool Errors

class ToolError(MentorAgentError):
    """Base exception for tool-related errors."""

    def __init__(self, tool_name: str, message: str, details: Optional[dict] = None):
        super().__init__(f"[{tool_name}] {message}", details)
        self.tool_name = tool_name
        self.reason = message


class ToolRegistrationError(ToolError):
    """Raised when a tool name is registered twice."""

    def __init__(self, tool_name: str):
        super().__init__(tool_name, f"Tool {tool_name} is already registered")


class ToolExecutionError(ToolError):
    """Raised when a tool side effect fails partway through."""

    def __init__(self, tool_name: str, stage: str, message: str):
        super().__init__(tool_name, f"{stage} failed: {message}", {"stage": stage})
        self.stage = stage


# Prompt Errors

class PromptError(MentorAgentError):
    """Base exception for prompt-related errors."""
    pass


class PromptTemplateError(PromptError):
    """Raised when prompt template rendering fails."""

    def __init__(self, template_name: str, missing_vars: Optional[list[str]] = None):
        message = f"Failed to render template '{template_name}'"
        if missing_vars:
            message += f": missing variables {missing_vars}"
        super().__init__(message)
        self.template_name = template_name
        self.missing_vars = missing_vars or []
