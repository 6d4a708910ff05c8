"""
Concrete completion providers.

Each provider sends a single user message and returns the text of the
first choice. SDK exceptions propagate as-is.
"""

import asyncio
import os
import shutil
from typing import Optional

import anthropic
import google.generativeai as genai
from openai import AsyncOpenAI

from cpl.llm.client import CompletionClient
from cpl.utils.errors import CompletionError, MissingConfigurationError
from cpl.utils.logging import get_logger

logger = get_logger(__name__)

DEEPSEEK_BASE_URL = "https://api.deepseek.com"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
MAX_OUTPUT_TOKENS = 4096


class OpenAIClient(CompletionClient):
    """OpenAI chat completions, also used for OpenAI-compatible endpoints."""

    def __init__(self,
                 model: str,
                 api_key: str,
                 base_url: Optional[str] = None,
                 timeout: float = 300.0):
        self.model = model
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def complete(self, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            max_tokens=MAX_OUTPUT_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise CompletionError("Unexpected response format", {"model": self.model})
        return content


class OllamaClient(OpenAIClient):
    """Local Ollama server through its OpenAI-compatible /v1 endpoint."""

    def __init__(self,
                 model: str,
                 base_url: Optional[str] = None,
                 timeout: float = 300.0):
        # Host priority: argument > OLLAMA_HOST > default
        host = base_url or os.getenv("OLLAMA_HOST") or DEFAULT_OLLAMA_HOST
        if not host.startswith("http"):
            host = f"http://{host}"
        super().__init__(
            model=model,
            api_key="ollama",  # required by the SDK, ignored by Ollama
            base_url=f"{host.rstrip('/')}/v1",
            timeout=timeout,
        )


class GeminiClient(CompletionClient):
    """Google Gemini through google-generativeai."""

    def __init__(self, model: str, api_key: str):
        self.model = model
        genai.configure(api_key=api_key)
        self.model_instance = genai.GenerativeModel(
            model_name=model,
            generation_config={"max_output_tokens": MAX_OUTPUT_TOKENS},
        )

    async def complete(self, prompt: str) -> str:
        response = await self.model_instance.generate_content_async(prompt)
        text = response.text
        if not text:
            raise CompletionError("Unexpected response format", {"model": self.model})
        return text


class AnthropicClient(CompletionClient):
    """Anthropic Messages API."""

    def __init__(self, model: str, api_key: str, timeout: float = 300.0):
        self.model = model
        self.client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout)

    async def complete(self, prompt: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=MAX_OUTPUT_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )

        texts = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        if not texts:
            raise CompletionError("Unexpected response format", {"model": self.model})
        return "".join(texts)


class ClaudeCodeClient(CompletionClient):
    """
    The local `claude` CLI in print mode.

    Needs no API key; useful when running inside Claude Code itself.
    """

    def __init__(self, executable: str = "claude", timeout: float = 300.0):
        self.executable = executable
        self.timeout = timeout

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    async def complete(self, prompt: str) -> str:
        if not self.is_available():
            raise MissingConfigurationError(f"{self.executable} executable")

        logger.debug(f"Running {self.executable} in print mode ({len(prompt)} chars)")

        # stdin must not be inherited or the CLI waits for input
        proc = await asyncio.create_subprocess_exec(
            self.executable, "-p", prompt, "--output-format", "text",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise

        if proc.returncode != 0:
            raise CompletionError(
                f"{self.executable} exited with code {proc.returncode}",
                {"stderr": stderr.decode("utf-8", errors="replace").strip()},
            )

        return stdout.decode("utf-8", errors="replace").strip()
