"""
LLM Service: centralized interface for LLM API calls.

Routes calls to the correct provider (OpenAI, Anthropic, Google) based on the
provider + model_id the caller was configured with (see config.Settings).

`call()` is the single-prompt entry point (roadmap JSON, follow-up drafts).
`converse()` is the tool-use entry point for the mentor agent and is
Anthropic-only.
"""

import json
import time
from typing import Dict, Any, List, Optional
import anthropic
from openai import OpenAI, OpenAIError, RateLimitError, APITimeoutError
from google import genai
import logging

from mentorship.exceptions import LLMServiceError

logger = logging.getLogger(__name__)

# Models that use the OpenAI Responses API (vs Chat Completions)
_RESPONSES_API_MODELS = {"gpt-5.2", "gpt-5.1"}

_RETRYABLE_ERRORS = (
    RateLimitError,
    APITimeoutError,
    anthropic.RateLimitError,
    anthropic.APITimeoutError,
)
_FATAL_PROVIDER_ERRORS = (OpenAIError, anthropic.APIError)


class LLMService:
    """
    Service for making LLM API calls with retry logic and error handling.

    Both `provider` and `model_id` are REQUIRED; there are no defaults.
    """

    def __init__(
        self,
        *,
        provider: str,
        model_id: str,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        max_retries: int = 3,
        initial_retry_delay: float = 1.0,
        timeout: int = 120,
    ):
        self.provider = provider
        self.model_id = model_id
        self.max_retries = max_retries
        self.initial_retry_delay = initial_retry_delay
        self.timeout = timeout

        self.client = OpenAI(api_key=openai_api_key) if openai_api_key else None

        if gemini_api_key:
            self.gemini_client = genai.Client(api_key=gemini_api_key)
            self.has_gemini = True
        else:
            self.has_gemini = False

        self.anthropic_adapter = None
        if anthropic_api_key:
            from shared.services.anthropic_adapter import AnthropicAdapter
            self.anthropic_adapter = AnthropicAdapter(
                api_key=anthropic_api_key, timeout=timeout, model=model_id
            )

    @classmethod
    def from_settings(cls, settings, provider: str, model_id: str) -> "LLMService":
        """Build a service for one provider/model using credentials from Settings."""
        return cls(
            provider=provider,
            model_id=model_id,
            openai_api_key=settings.openai_api_key or None,
            anthropic_api_key=settings.anthropic_api_key or None,
            gemini_api_key=settings.gemini_api_key or None,
        )

    # ─── Primary entry points ─────────────────────────────────────────

    def call(
        self,
        prompt: str,
        reasoning_effort: str = "none",
        json_mode: bool = True,
        system: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Generic LLM call. Routes to the correct API based on self.provider + self.model_id.

        Always returns: {output_text: str, reasoning: str|None, parsed: dict|None}
        """
        if self.provider == "anthropic":
            return self._call_anthropic(prompt, reasoning_effort, json_mode, system)
        elif self.provider == "google":
            full_prompt = f"{system}\n\n{prompt}" if system else prompt
            text = self._call_gemini(full_prompt, json_mode=json_mode)
            return self._with_parsed(text, json_mode)
        else:
            if self.model_id in _RESPONSES_API_MODELS:
                result = self._call_responses_api(prompt, reasoning_effort, json_mode, system)
                return self._with_parsed(result["output_text"], json_mode, result.get("reasoning"))
            text = self._call_chat_completions(prompt, json_mode=json_mode, system=system)
            return self._with_parsed(text, json_mode)

    def converse(
        self,
        system: str,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        max_tokens: int = 4096,
    ) -> Dict[str, Any]:
        """Tool-use conversation turn (Anthropic). See AnthropicAdapter.converse."""
        if not self.anthropic_adapter:
            raise LLMServiceError("Anthropic adapter not configured (missing API key)")

        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "starting",
            "model": self.model_id,
            "params": {"turns": len(messages), "tools": len(tools or [])},
        }))

        def _api_call():
            return self.anthropic_adapter.converse(system, messages, tools, max_tokens)

        return self._execute_with_retry(_api_call, self.model_id)

    # ─── OpenAI Responses API (gpt-5.2, gpt-5.1) ─────────────────────

    def _call_responses_api(
        self,
        prompt: str,
        reasoning_effort: str = "none",
        json_mode: bool = True,
        system: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Call OpenAI Responses API (gpt-5.2, gpt-5.1)."""
        if not self.client:
            raise LLMServiceError("OpenAI client not configured (missing API key)")

        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "starting",
            "model": self.model_id,
            "params": {"reasoning_effort": reasoning_effort, "json_mode": json_mode},
        }))

        def _api_call():
            kwargs = {
                "model": self.model_id,
                "input": prompt,
                "timeout": self.timeout,
            }
            if system:
                kwargs["instructions"] = system
            if reasoning_effort != "none":
                kwargs["reasoning"] = {"effort": reasoning_effort}
            if json_mode:
                kwargs["text"] = {"format": {"type": "json_object"}}

            result = self.client.responses.create(**kwargs)
            reasoning_obj = getattr(result, "reasoning", None)
            reasoning_str = None
            if reasoning_obj is not None and getattr(reasoning_obj, "summary", None):
                reasoning_str = str(reasoning_obj.summary)
            return {"output_text": result.output_text, "reasoning": reasoning_str}

        return self._execute_with_retry(_api_call, self.model_id)

    # ─── OpenAI Chat Completions API ──────────────────────────────────

    def _call_chat_completions(
        self,
        prompt: str,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        json_mode: bool = True,
        system: Optional[str] = None,
    ) -> str:
        """Call OpenAI Chat Completions API. Returns raw text."""
        if not self.client:
            raise LLMServiceError("OpenAI client not configured (missing API key)")

        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "starting",
            "model": self.model_id,
            "params": {"json_mode": json_mode}
        }))

        def _api_call():
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})
            kwargs = {
                "model": self.model_id,
                "messages": messages,
                "max_completion_tokens": max_tokens,
                "temperature": temperature,
                "timeout": self.timeout,
            }
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}
            response = self.client.chat.completions.create(**kwargs)
            return response.choices[0].message.content

        return self._execute_with_retry(_api_call, self.model_id)

    # ─── Anthropic ────────────────────────────────────────────────────

    def _call_anthropic(
        self,
        prompt: str,
        reasoning_effort: str = "none",
        json_mode: bool = True,
        system: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Call Anthropic Claude via the adapter."""
        if not self.anthropic_adapter:
            raise LLMServiceError("Anthropic adapter not configured (missing API key)")

        def _api_call():
            return self.anthropic_adapter.call_sync(
                prompt=prompt,
                reasoning_effort=reasoning_effort,
                json_mode=json_mode,
                system=system,
            )

        return self._execute_with_retry(_api_call, self.model_id)

    # ─── Gemini ───────────────────────────────────────────────────────

    def _call_gemini(self, prompt: str, temperature: float = 0.7, json_mode: bool = True) -> str:
        """Call Google Gemini. Returns raw text."""
        if not self.has_gemini:
            raise LLMServiceError("Gemini API key not configured")

        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "starting",
            "model": self.model_id,
            "params": {"temperature": temperature}
        }))

        def _api_call():
            config = {"temperature": temperature}
            if json_mode:
                config["response_mime_type"] = "application/json"
            response = self.gemini_client.models.generate_content(
                model=self.model_id, contents=prompt, config=config
            )
            return response.text

        return self._execute_with_retry(_api_call, f"Gemini-{self.model_id}")

    # ─── Helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _with_parsed(text: Optional[str], json_mode: bool, reasoning: Optional[str] = None) -> Dict[str, Any]:
        parsed = None
        if json_mode and text:
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                parsed = None
        return {"output_text": text or "", "reasoning": reasoning, "parsed": parsed}

    def _execute_with_retry(self, api_call_fn, model_name: str) -> Any:
        """Execute API call with exponential backoff retry logic."""
        last_error = None
        delay = self.initial_retry_delay
        start_time = time.time()

        for attempt in range(self.max_retries):
            try:
                result = api_call_fn()
                duration_ms = int((time.time() - start_time) * 1000)

                logger.info(json.dumps({
                    "step": "LLM_CALL",
                    "status": "complete",
                    "model": model_name,
                    "output": {"response_length": len(str(result)) if result else 0},
                    "duration_ms": duration_ms,
                    "attempts": attempt + 1
                }))

                if attempt > 0:
                    logger.info(f"{model_name} call succeeded on attempt {attempt + 1}")
                return result

            except _RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(
                    f"{model_name} rate limit or timeout (attempt {attempt + 1}/{self.max_retries}). "
                    f"Retrying in {delay}s..."
                )
                time.sleep(delay)
                delay *= 2

            except _FATAL_PROVIDER_ERRORS as e:
                logger.error(f"{model_name} API error: {str(e)}")
                raise LLMServiceError(f"{model_name} API error: {str(e)}", model_name, attempt + 1) from e

            except Exception as e:
                logger.error(f"{model_name} unexpected error: {str(e)}")
                raise LLMServiceError(f"{model_name} unexpected error: {str(e)}", model_name, attempt + 1) from e

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(json.dumps({
            "step": "LLM_CALL",
            "status": "failed",
            "model": model_name,
            "error": str(last_error),
            "duration_ms": duration_ms,
            "attempts": self.max_retries
        }))
        raise LLMServiceError(
            f"{model_name} failed after {self.max_retries} attempts. Last error: {str(last_error)}",
            model_name,
            self.max_retries,
        ) from last_error
