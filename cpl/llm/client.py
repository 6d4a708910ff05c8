"""
Completion capability interface and provider selection.

The extraction core only ever sees a CompletionClient; which provider sits
behind it is decided here from LLMConfig. Provider errors are never wrapped
or retried.
"""

import os
from abc import ABC, abstractmethod

from cpl.config import SUPPORTED_PROVIDERS, LLMConfig
from cpl.utils.errors import MissingConfigurationError, UnsupportedProviderError


class CompletionClient(ABC):
    """Anything that turns a prompt into text."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Return the model's text response to prompt."""


def resolve_api_key(api_key_env: str) -> str:
    """Read the API key from the environment variable named in config."""
    if not api_key_env:
        raise MissingConfigurationError("llm.api_key_env")
    api_key = os.getenv(api_key_env)
    if not api_key:
        raise MissingConfigurationError(api_key_env)
    return api_key


def create_completion_client(config: LLMConfig) -> CompletionClient:
    """
    Create a completion client for the configured provider.

    Args:
        config: Provider, model, credentials and endpoint settings

    Returns:
        Ready-to-use client
    """
    from cpl.llm import providers

    if config.provider == "claude-code":
        return providers.ClaudeCodeClient(timeout=config.timeout)

    if config.provider == "ollama":
        return providers.OllamaClient(
            model=config.model,
            base_url=config.base_url,
            timeout=config.timeout,
        )

    if config.provider not in SUPPORTED_PROVIDERS:
        raise UnsupportedProviderError(config.provider, SUPPORTED_PROVIDERS)

    api_key = resolve_api_key(config.api_key_env)

    if config.provider == "openai":
        return providers.OpenAIClient(
            model=config.model,
            api_key=api_key,
            base_url=config.base_url,
            timeout=config.timeout,
        )
    if config.provider == "deepseek":
        return providers.OpenAIClient(
            model=config.model,
            api_key=api_key,
            base_url=config.base_url or providers.DEEPSEEK_BASE_URL,
            timeout=config.timeout,
        )
    if config.provider == "gemini":
        return providers.GeminiClient(model=config.model, api_key=api_key)
    if config.provider == "anthropic":
        return providers.AnthropicClient(
            model=config.model,
            api_key=api_key,
            timeout=config.timeout,
        )

    raise UnsupportedProviderError(config.provider, SUPPORTED_PROVIDERS)
