"""
Anthropic (Claude) Adapter

Encapsulates all Claude API interaction.

Handles:
- Single-prompt calls used by LLMService ({output_text, reasoning, parsed} dict)
- Tool-use conversations for the mentor agent (converse)
- JSON mode -> prompt-based JSON instruction
- Reasoning effort -> thinking budget mapping
"""

import json
import logging
from typing import Dict, Any, List, Optional

import anthropic

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_MODEL = "claude-opus-4-6"

THINKING_BUDGET_MAP = {
    "none": 0,
    "low": 5_000,
    "medium": 10_000,
    "high": 20_000,
}


class AnthropicAdapter:
    """Adapter around Anthropic's Messages API."""

    def __init__(self, api_key: str, timeout: int = 60, model: str = DEFAULT_CLAUDE_MODEL):
        self.model = model
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)

    def _build_kwargs(
        self,
        prompt: str,
        reasoning_effort: str = "none",
        json_mode: bool = True,
        system: Optional[str] = None,
        max_tokens: int = 16384,
    ) -> Dict[str, Any]:
        """Build kwargs for anthropic messages.create()."""
        system_parts = [system] if system else []
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
        }

        budget = THINKING_BUDGET_MAP.get(reasoning_effort, 0)
        if budget > 0:
            kwargs["thinking"] = {"type": "enabled", "budget_tokens": budget}

        if json_mode:
            system_parts.append(
                "You MUST respond with valid JSON only. No markdown, no explanation outside the JSON."
            )

        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)

        kwargs["messages"] = [{"role": "user", "content": prompt}]
        return kwargs

    def _parse_response(self, response: Any, json_mode: bool = True) -> Dict[str, Any]:
        """Parse Anthropic response into standard {output_text, reasoning, parsed} dict."""
        output_text = ""
        reasoning_str = None
        parsed = None

        for block in response.content:
            if block.type == "thinking":
                reasoning_str = block.thinking
            elif block.type == "text":
                output_text += block.text

        if json_mode:
            try:
                parsed = json.loads(output_text)
            except json.JSONDecodeError:
                parsed = None

        return {
            "output_text": output_text,
            "reasoning": reasoning_str,
            "parsed": parsed,
        }

    def call_sync(
        self,
        prompt: str,
        reasoning_effort: str = "none",
        json_mode: bool = True,
        system: Optional[str] = None,
        max_tokens: int = 16384,
    ) -> Dict[str, Any]:
        """Sync call to Claude, returning the standard output dict."""
        kwargs = self._build_kwargs(prompt, reasoning_effort, json_mode, system, max_tokens)
        response = self.client.messages.create(**kwargs)
        return self._parse_response(response, json_mode)

    # ─── Tool-use conversation ────────────────────────────────────────

    def converse(
        self,
        system: str,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        max_tokens: int = 4096,
    ) -> Dict[str, Any]:
        """
        One turn of a tool-using conversation.

        Returns:
            {
              "text": concatenated text blocks,
              "tool_uses": [{"id", "name", "input"}],
              "stop_reason": str,
              "content": assistant content blocks as plain dicts (for echoing back),
            }
        """
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "system": system,
            "messages": messages,
        }
        if tools:
            kwargs["tools"] = tools

        response = self.client.messages.create(**kwargs)
        return self._parse_turn(response)

    @staticmethod
    def _parse_turn(response: Any) -> Dict[str, Any]:
        text_parts: List[str] = []
        tool_uses: List[Dict[str, Any]] = []
        content: List[Dict[str, Any]] = []

        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
                content.append({"type": "text", "text": block.text})
            elif block.type == "tool_use":
                call = {"id": block.id, "name": block.name, "input": dict(block.input or {})}
                tool_uses.append(call)
                content.append({"type": "tool_use", **call})

        return {
            "text": "\n".join(part for part in text_parts if part).strip(),
            "tool_uses": tool_uses,
            "stop_reason": getattr(response, "stop_reason", None),
            "content": content,
        }
