"""Tests for LLM Factory module."""

import os
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import openai
import httpx
import pytest

from scatterbrain.core.exceptions import ConfigurationError, UpstreamError
from scatterbrain.core.llm_factory import (
    AnthropicProvider,
    LLMFactory,
    LLMResponse,
    OpenAIProvider,
)


def _anthropic_response(*texts: str) -> MagicMock:
    response = MagicMock()
    response.content = [MagicMock(type="text", text=t) for t in texts]
    response.usage.input_tokens = 10
    response.usage.output_tokens = 5
    return response


def _status_response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", "https://api.anthropic.com"))


class TestLLMResponse:
    def test_basic_response(self):
        r = LLMResponse(content="hello", model="test-model")
        assert r.content == "hello"
        assert r.usage is None


class TestLLMFactory:
    def test_available_providers(self):
        assert LLMFactory.available_providers() == ["anthropic", "openai"]

    def test_unknown_provider_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            LLMFactory.create("gemini", api_key="x")

    def test_creates_anthropic_case_insensitive(self):
        with patch("anthropic.AsyncAnthropic"):
            provider = LLMFactory.create("Anthropic", api_key="test", model="claude-x")
        assert isinstance(provider, AnthropicProvider)
        assert provider.model == "claude-x"


class TestAnthropicProvider:
    """Tests for AnthropicProvider."""

    def test_requires_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
                AnthropicProvider()

    def test_reads_key_from_env(self):
        with patch.dict(os.environ, {"ANTHROPIC_API_KEY": "sk-env"}, clear=True):
            with patch("anthropic.AsyncAnthropic") as client_cls:
                AnthropicProvider()
        client_cls.assert_called_once_with(api_key="sk-env")

    def test_default_model(self):
        with patch("anthropic.AsyncAnthropic"):
            assert AnthropicProvider(api_key="test").model == AnthropicProvider.DEFAULT_MODEL

    @pytest.mark.asyncio
    async def test_generate_joins_text_blocks(self):
        mock_client = AsyncMock()
        mock_client.messages.create.return_value = _anthropic_response("Hello ", "world")

        with patch("anthropic.AsyncAnthropic", return_value=mock_client):
            p = AnthropicProvider(api_key="test")
            result = await p.generate("Say hello", "Be brief", max_tokens=100, temperature=0.3)

        assert result.content == "Hello world"
        assert result.usage == {"input_tokens": 10, "output_tokens": 5}
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "Be brief"
        assert kwargs["max_tokens"] == 100
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"] == [{"role": "user", "content": "Say hello"}]

    @pytest.mark.asyncio
    async def test_generate_omits_unset_system_and_temperature(self):
        mock_client = AsyncMock()
        mock_client.messages.create.return_value = _anthropic_response("{}")

        with patch("anthropic.AsyncAnthropic", return_value=mock_client):
            p = AnthropicProvider(api_key="test")
            await p.generate("prompt", model="claude-override")

        kwargs = mock_client.messages.create.call_args.kwargs
        assert "system" not in kwargs
        assert "temperature" not in kwargs
        assert kwargs["model"] == "claude-override"
        assert kwargs["max_tokens"] == AnthropicProvider.DEFAULT_MAX_TOKENS

    @pytest.mark.asyncio
    async def test_connection_error_becomes_upstream_error(self):
        mock_client = AsyncMock()
        mock_client.messages.create.side_effect = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com")
        )

        with patch("anthropic.AsyncAnthropic", return_value=mock_client):
            p = AnthropicProvider(api_key="test")
            with pytest.raises(UpstreamError) as exc_info:
                await p.generate("prompt")

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_client_error_status_is_not_retryable(self):
        mock_client = AsyncMock()
        mock_client.messages.create.side_effect = anthropic.BadRequestError(
            "bad request", response=_status_response(400), body=None
        )

        with patch("anthropic.AsyncAnthropic", return_value=mock_client):
            p = AnthropicProvider(api_key="test")
            with pytest.raises(UpstreamError) as exc_info:
                await p.generate("prompt")

        assert "400" in str(exc_info.value)
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_server_error_status_is_retryable(self):
        mock_client = AsyncMock()
        mock_client.messages.create.side_effect = anthropic.InternalServerError(
            "overloaded", response=_status_response(529), body=None
        )

        with patch("anthropic.AsyncAnthropic", return_value=mock_client):
            p = AnthropicProvider(api_key="test")
            with pytest.raises(UpstreamError) as exc_info:
                await p.generate("prompt")

        assert exc_info.value.retryable is True


class TestOpenAIProvider:
    def test_missing_package_raises_configuration_error(self):
        with patch.dict(sys.modules, {"openai": None}):
            with pytest.raises(ConfigurationError, match="openai package required"):
                OpenAIProvider(api_key="test")

    def test_reasoning_model_detection(self):
        assert OpenAIProvider._is_reasoning_model("o3-mini")
        assert OpenAIProvider._is_reasoning_model("gpt-5")
        assert not OpenAIProvider._is_reasoning_model("gpt-4o-mini")

    @pytest.mark.asyncio
    async def test_rejected_key_is_non_retryable_upstream_error(self):
        mock_client = AsyncMock()
        mock_client.chat.completions.create.side_effect = openai.AuthenticationError(
            "Incorrect API key provided", response=_status_response(401), body=None
        )

        with patch("openai.AsyncOpenAI", return_value=mock_client):
            p = OpenAIProvider(api_key="sk-bad")
            with pytest.raises(UpstreamError) as exc_info:
                await p.generate("prompt")

        assert "key rejected" in str(exc_info.value)
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_server_error_status_is_retryable(self):
        mock_client = AsyncMock()
        mock_client.chat.completions.create.side_effect = openai.InternalServerError(
            "server error", response=_status_response(503), body=None
        )

        with patch("openai.AsyncOpenAI", return_value=mock_client):
            p = OpenAIProvider(api_key="sk-test")
            with pytest.raises(UpstreamError) as exc_info:
                await p.generate("prompt")

        assert "503" in str(exc_info.value)
        assert exc_info.value.retryable is True
