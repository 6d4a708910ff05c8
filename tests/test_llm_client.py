"""
Tests for completion provider selection and the provider clients.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from cpl.config import LLMConfig
from cpl.llm import providers
from cpl.llm.client import create_completion_client, resolve_api_key
from cpl.utils.errors import CompletionError, MissingConfigurationError


class TestResolveApiKey:
    """Test API key lookup."""

    def test_reads_named_variable(self, monkeypatch):
        monkeypatch.setenv("MY_KEY", "secret")
        assert resolve_api_key("MY_KEY") == "secret"

    def test_missing_variable(self, monkeypatch):
        monkeypatch.delenv("MY_KEY", raising=False)
        with pytest.raises(MissingConfigurationError):
            resolve_api_key("MY_KEY")

    def test_no_variable_configured(self):
        with pytest.raises(MissingConfigurationError):
            resolve_api_key("")


class TestCreateCompletionClient:
    """Test provider dispatch."""

    def test_claude_code_default(self):
        client = create_completion_client(LLMConfig())

        assert isinstance(client, providers.ClaudeCodeClient)
        assert client.timeout == 300.0

    def test_ollama_needs_no_key(self, monkeypatch):
        monkeypatch.delenv("OLLAMA_HOST", raising=False)
        client = create_completion_client(LLMConfig(provider="ollama", model="llama3"))

        assert isinstance(client, providers.OllamaClient)
        assert str(client.client.base_url).rstrip("/") == "http://localhost:11434/v1"

    def test_ollama_host_from_env(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_HOST", "gpu-box:11434")
        client = create_completion_client(LLMConfig(provider="ollama", model="llama3"))

        assert str(client.client.base_url).rstrip("/") == "http://gpu-box:11434/v1"

    def test_openai(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        client = create_completion_client(
            LLMConfig(provider="openai", model="gpt-4o", api_key_env="OPENAI_API_KEY")
        )

        assert type(client) is providers.OpenAIClient
        assert client.model == "gpt-4o"

    def test_deepseek_default_endpoint(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-test")
        client = create_completion_client(
            LLMConfig(provider="deepseek", model="deepseek-chat", api_key_env="DEEPSEEK_API_KEY")
        )

        assert str(client.client.base_url).startswith(providers.DEEPSEEK_BASE_URL)

    def test_anthropic(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        client = create_completion_client(
            LLMConfig(provider="anthropic", model="claude-sonnet-4-20250514", api_key_env="ANTHROPIC_API_KEY")
        )

        assert isinstance(client, providers.AnthropicClient)

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(MissingConfigurationError):
            create_completion_client(
                LLMConfig(provider="openai", model="gpt-4o", api_key_env="OPENAI_API_KEY")
            )


class TestOpenAIClient:
    """Test response handling."""

    @pytest.mark.asyncio
    async def test_returns_message_content(self):
        client = providers.OpenAIClient(model="gpt-4o", api_key="sk-test")
        response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="patterns: []"))])
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=response)

        assert await client.complete("prompt") == "patterns: []"
        kwargs = client.client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    @pytest.mark.asyncio
    async def test_empty_response(self):
        client = providers.OpenAIClient(model="gpt-4o", api_key="sk-test")
        client.client = MagicMock()
        client.client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(choices=[]))

        with pytest.raises(CompletionError):
            await client.complete("prompt")


class TestAnthropicClient:
    """Test text block joining."""

    @pytest.mark.asyncio
    async def test_joins_text_blocks(self):
        client = providers.AnthropicClient(model="claude-sonnet-4-20250514", api_key="sk-ant-test")
        response = SimpleNamespace(content=[
            SimpleNamespace(type="text", text="patterns:"),
            SimpleNamespace(type="tool_use"),
            SimpleNamespace(type="text", text=" []"),
        ])
        client.client = MagicMock()
        client.client.messages.create = AsyncMock(return_value=response)

        assert await client.complete("prompt") == "patterns: []"


class TestClaudeCodeClient:
    """Test the CLI subprocess client."""

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        client = providers.ClaudeCodeClient(executable="definitely-not-installed-cpl")

        with pytest.raises(MissingConfigurationError):
            await client.complete("prompt")

    @pytest.mark.asyncio
    async def test_runs_print_mode(self, monkeypatch):
        process = MagicMock()
        process.communicate = AsyncMock(return_value=(b"patterns: []\n", b""))
        process.returncode = 0
        spawn = AsyncMock(return_value=process)
        monkeypatch.setattr(providers.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(asyncio, "create_subprocess_exec", spawn)

        result = await providers.ClaudeCodeClient().complete("hello")

        assert result == "patterns: []"
        assert spawn.call_args.args == ("claude", "-p", "hello", "--output-format", "text")

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, monkeypatch):
        process = MagicMock()
        process.communicate = AsyncMock(return_value=(b"", b"not logged in"))
        process.returncode = 1
        monkeypatch.setattr(providers.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(asyncio, "create_subprocess_exec", AsyncMock(return_value=process))

        with pytest.raises(CompletionError) as exc_info:
            await providers.ClaudeCodeClient().complete("hello")

        assert exc_info.value.details["stderr"] == "not logged in"
