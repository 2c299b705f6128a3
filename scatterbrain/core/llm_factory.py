"""LLM provider factory for the Scatterbrain content engine.

Supports Anthropic (Claude) and OpenAI (GPT) behind one async interface.
Each call carries its own model parameters so pipeline stages can tune
token budgets and temperature independently. Provider SDK failures are
wrapped into UpstreamError; SDK-internal retries are left to the SDK.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import anthropic

from scatterbrain.core.exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Text reply plus usage accounting returned by every provider."""

    content: str
    model: str
    usage: Optional[dict[str, Any]] = None


class LLMProvider(ABC):
    """Common interface the prompted-call layer drives.

    One call sends one user message and returns one complete text response.
    """

    @property
    @abstractmethod
    def model(self) -> str:
        """Default model identifier for this provider."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        """Send one system/user prompt pair and return the reply text.

        Args:
            prompt: User prompt text
            system_prompt: Optional system instructions
            model: Model override, provider default when omitted
            max_tokens: Max output tokens override
            temperature: Sampling temperature, provider default when omitted

        Returns:
            LLMResponse with content and metadata

        Raises:
            UpstreamError: On connection, rate-limit or status failures
        """


class AnthropicProvider(LLMProvider):
    """Anthropic Claude provider."""

    DEFAULT_MODEL = "claude-sonnet-4-5"
    DEFAULT_MAX_TOKENS = 2000

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if not self._api_key:
            raise ConfigurationError(
                "ANTHROPIC_API_KEY is required for Anthropic provider"
            )

        self._model = model or self.DEFAULT_MODEL
        self._max_tokens = max_tokens
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    @property
    def model(self) -> str:
        return self._model

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        kwargs: dict[str, Any] = {
            "model": model or self._model,
            "max_tokens": max_tokens or self._max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIConnectionError as e:
            raise UpstreamError(f"Failed to connect to Anthropic API: {e}")
        except anthropic.RateLimitError as e:
            raise UpstreamError(f"Anthropic API rate limit exceeded: {e}")
        except anthropic.APIStatusError as e:
            raise UpstreamError(
                f"Anthropic API error: {e.status_code} - {e.message}",
                retryable=e.status_code >= 500,
            )

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        return LLMResponse(
            content=text,
            model=kwargs["model"],
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )


class OpenAIProvider(LLMProvider):
    """OpenAI GPT provider (requires the optional `openai` extra)."""

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_MAX_TOKENS = 2000

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        try:
            import openai
        except ImportError:
            raise ConfigurationError(
                "openai package required: pip install 'scatterbrain[openai]'"
            )

        self._api_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        if not self._api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is required for OpenAI provider"
            )

        self._model = model or self.DEFAULT_MODEL
        self._max_tokens = max_tokens
        self._client = openai.AsyncOpenAI(api_key=self._api_key)

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def _is_reasoning_model(model: str) -> bool:
        """Reasoning models take max_completion_tokens and no temperature."""
        return model.startswith(("o1", "o3", "o4", "gpt-5"))

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        *,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> LLMResponse:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        model_name = model or self._model
        tokens = max_tokens or self._max_tokens
        kwargs: dict[str, Any] = {"model": model_name, "messages": messages}

        if self._is_reasoning_model(model_name):
            kwargs["max_completion_tokens"] = tokens
        else:
            kwargs["max_tokens"] = tokens
            if temperature is not None:
                kwargs["temperature"] = temperature

        import openai

        try:
            response = await self._client.chat.completions.create(**kwargs)
        except openai.AuthenticationError as e:
            raise UpstreamError(f"OpenAI API key rejected: {e.message}", retryable=False)
        except openai.APIConnectionError as e:
            raise UpstreamError(f"Failed to connect to OpenAI API: {e}")
        except openai.RateLimitError as e:
            raise UpstreamError(f"OpenAI API rate limit exceeded: {e}")
        except openai.APIStatusError as e:
            raise UpstreamError(
                f"OpenAI API error: {e.status_code} - {e.message}",
                retryable=e.status_code >= 500,
            )

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=model_name,
            usage=response.usage.model_dump() if response.usage else None,
        )


class LLMFactory:
    """Builds the provider named in configuration."""

    _PROVIDERS: dict[str, type[LLMProvider]] = {
        "anthropic": AnthropicProvider,
        "openai": OpenAIProvider,
    }

    @staticmethod
    def create(
        provider: str,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        **kwargs: Any,
    ) -> LLMProvider:
        """Instantiate a provider by name.

        Args:
            provider: One of 'anthropic', 'openai'
            api_key: API key (optional if set in environment)
            model: Model name (optional, uses provider defaults)
            **kwargs: Additional provider-specific options

        Raises:
            ConfigurationError: If provider is unknown or API key is missing
        """
        provider_class = LLMFactory._PROVIDERS.get(provider.lower())
        if provider_class is None:
            available = ", ".join(LLMFactory.available_providers())
            raise ConfigurationError(
                f"Unknown provider: {provider}. Available: {available}"
            )
        logger.debug("Creating %s provider", provider.lower())
        return provider_class(api_key=api_key, model=model, **kwargs)

    @staticmethod
    def available_providers() -> list[str]:
        return sorted(LLMFactory._PROVIDERS.keys())
