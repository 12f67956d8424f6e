"""
Unit tests for LLMService.

Covers provider routing, JSON parsing, the Anthropic tool-use entry point and
retry/error translation. OpenAI, Gemini and Anthropic clients are mocked.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import Mock, patch

from mentorship.exceptions import LLMServiceError
from shared.services.llm_service import LLMService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_responses_result(output_text='{"key": "value"}', reasoning=None):
    result = Mock()
    result.output_text = output_text
    result.reasoning = reasoning
    return result


def _make_chat_response(content='{"result": "ok"}'):
    response = Mock()
    response.choices = [Mock(message=Mock(content=content))]
    return response


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

class TestLLMServiceInit:
    @patch("shared.services.llm_service.OpenAI")
    def test_openai_only(self, mock_openai_cls):
        service = LLMService(provider="openai", model_id="gpt-5.2", openai_api_key="fake-key")

        mock_openai_cls.assert_called_once_with(api_key="fake-key")
        assert service.has_gemini is False
        assert service.anthropic_adapter is None
        assert service.max_retries == 3
        assert service.timeout == 120

    @patch("shared.services.llm_service.genai")
    def test_gemini_key(self, mock_genai):
        service = LLMService(provider="google", model_id="gemini-3-pro", gemini_api_key="gemini-key")

        assert service.has_gemini is True
        assert service.client is None
        mock_genai.Client.assert_called_once_with(api_key="gemini-key")

    @patch("shared.services.anthropic_adapter.anthropic")
    def test_anthropic_adapter_uses_model(self, mock_anthropic):
        service = LLMService(provider="anthropic", model_id="claude-opus-4-6", anthropic_api_key="ak")
        assert service.anthropic_adapter.model == "claude-opus-4-6"

    @patch("shared.services.anthropic_adapter.anthropic")
    @patch("shared.services.llm_service.OpenAI")
    def test_from_settings(self, mock_openai_cls, mock_anthropic):
        settings = SimpleNamespace(openai_api_key="ok", anthropic_api_key="ak", gemini_api_key="")
        service = LLMService.from_settings(settings, "anthropic", "claude-opus-4-6")

        assert service.provider == "anthropic"
        assert service.client is not None
        assert service.anthropic_adapter is not None
        assert service.has_gemini is False


# ---------------------------------------------------------------------------
# call() routing
# ---------------------------------------------------------------------------

class TestCall:
    @patch("shared.services.llm_service.OpenAI")
    def test_responses_api_model(self, mock_openai_cls):
        client = Mock()
        client.responses.create.return_value = _make_responses_result('{"answer": "42"}')
        mock_openai_cls.return_value = client
        service = LLMService(provider="openai", model_id="gpt-5.2", openai_api_key="k")

        result = service.call("Question?", system="Be exact.")

        assert result == {"output_text": '{"answer": "42"}', "reasoning": None, "parsed": {"answer": "42"}}
        kwargs = client.responses.create.call_args[1]
        assert kwargs["instructions"] == "Be exact."
        assert kwargs["text"] == {"format": {"type": "json_object"}}
        assert "reasoning" not in kwargs

    @patch("shared.services.llm_service.OpenAI")
    def test_chat_completions_model(self, mock_openai_cls):
        client = Mock()
        client.chat.completions.create.return_value = _make_chat_response("plain words")
        mock_openai_cls.return_value = client
        service = LLMService(provider="openai", model_id="gpt-4o", openai_api_key="k")

        result = service.call("Hi", json_mode=False)

        assert result == {"output_text": "plain words", "reasoning": None, "parsed": None}
        assert "response_format" not in client.chat.completions.create.call_args[1]

    @patch("shared.services.llm_service.genai")
    def test_gemini(self, mock_genai):
        mock_genai.Client.return_value.models.generate_content.return_value = Mock(text='{"a": 1}')
        service = LLMService(provider="google", model_id="gemini-3-pro", gemini_api_key="g")

        result = service.call("prompt", system="sys")

        assert result["parsed"] == {"a": 1}
        kwargs = mock_genai.Client.return_value.models.generate_content.call_args[1]
        assert kwargs["contents"] == "sys\n\nprompt"
        assert kwargs["config"]["response_mime_type"] == "application/json"

    def test_anthropic_delegates_to_adapter(self):
        service = LLMService(provider="anthropic", model_id="claude-opus-4-6")
        service.anthropic_adapter = Mock()
        service.anthropic_adapter.call_sync.return_value = {"output_text": "hi", "reasoning": None, "parsed": None}

        assert service.call("Hi", json_mode=False)["output_text"] == "hi"
        assert service.anthropic_adapter.call_sync.call_args[1]["json_mode"] is False

    def test_invalid_json_is_not_parsed(self):
        assert LLMService._with_parsed("{broken", json_mode=True)["parsed"] is None

    @pytest.mark.parametrize("provider,model", [
        ("openai", "gpt-5.2"),
        ("openai", "gpt-4o"),
        ("anthropic", "claude-opus-4-6"),
        ("google", "gemini-3-pro"),
    ])
    def test_missing_credentials(self, provider, model):
        with pytest.raises(LLMServiceError):
            LLMService(provider=provider, model_id=model).call("x")


# ---------------------------------------------------------------------------
# converse()
# ---------------------------------------------------------------------------

class TestConverse:
    def test_requires_anthropic(self):
        with pytest.raises(LLMServiceError, match="Anthropic adapter not configured"):
            LLMService(provider="anthropic", model_id="claude-opus-4-6").converse("s", [])

    def test_delegates(self):
        service = LLMService(provider="anthropic", model_id="claude-opus-4-6")
        service.anthropic_adapter = Mock()
        service.anthropic_adapter.converse.return_value = {"text": "ok", "tool_uses": []}
        tools = [{"name": "t"}]
        messages = [{"role": "user", "content": "hi"}]

        assert service.converse("sys", messages, tools=tools, max_tokens=100) == {"text": "ok", "tool_uses": []}
        service.anthropic_adapter.converse.assert_called_once_with("sys", messages, tools, 100)


# ---------------------------------------------------------------------------
# _execute_with_retry
# ---------------------------------------------------------------------------

class TestExecuteWithRetry:
    def _service(self, **kwargs):
        return LLMService(provider="anthropic", model_id="claude-opus-4-6", initial_retry_delay=0.01, **kwargs)

    def test_succeeds_on_first_try(self):
        fn = Mock(return_value="success")
        assert self._service()._execute_with_retry(fn, "TestModel") == "success"
        assert fn.call_count == 1

    @patch("shared.services.llm_service.time")
    def test_retries_on_rate_limit(self, mock_time):
        mock_time.time.return_value = 0
        from openai import RateLimitError

        fn = Mock(side_effect=[
            RateLimitError("rate limit", response=Mock(status_code=429), body=None),
            "success",
        ])
        assert self._service(max_retries=3)._execute_with_retry(fn, "TestModel") == "success"
        assert fn.call_count == 2
        mock_time.sleep.assert_called_once_with(0.01)

    @patch("shared.services.llm_service.time")
    def test_raises_after_max_retries(self, mock_time):
        mock_time.time.return_value = 0
        from openai import RateLimitError

        fn = Mock(side_effect=RateLimitError("rate limit", response=Mock(status_code=429), body=None))
        with pytest.raises(LLMServiceError, match="failed after 2 attempts") as exc_info:
            self._service(max_retries=2)._execute_with_retry(fn, "TestModel")
        assert fn.call_count == 2
        assert exc_info.value.attempts == 2

    def test_non_retryable_provider_error_raises_immediately(self):
        from openai import AuthenticationError

        fn = Mock(side_effect=AuthenticationError("bad key", response=Mock(status_code=401), body=None))
        with pytest.raises(LLMServiceError, match="API error"):
            self._service(max_retries=3)._execute_with_retry(fn, "TestModel")
        assert fn.call_count == 1

    def test_unexpected_error_is_wrapped(self):
        fn = Mock(side_effect=KeyError("content"))
        with pytest.raises(LLMServiceError, match="unexpected error") as exc_info:
            self._service()._execute_with_retry(fn, "TestModel")
        assert exc_info.value.model_name == "TestModel"
