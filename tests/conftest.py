"""
Shared fixtures.
"""

import json
from pathlib import Path
from typing import List

import pytest

from cpl.catalog.store import CatalogStore
from cpl.config import reset_settings
from cpl.llm.client import CompletionClient


class FakeCompletionClient(CompletionClient):
    """Returns canned responses and records every prompt."""

    def __init__(self, responses=None, error: Exception = None):
        self.responses = list(responses or [])
        self.error = error
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if not self.responses:
            return "patterns: []"
        return self.responses.pop(0)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at a temp patterns dir and a temp home."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("CPL_PATTERNS_DIR", str(tmp_path / "patterns"))
    for name in ("CPL_LOG_LEVEL", "CPL_LLM_PROVIDER", "CPL_LLM_MODEL", "CLAUDE_SESSION_ID", "CLAUDE_PROJECT_PATH"):
        monkeypatch.delenv(name, raising=False)

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def catalog_path(tmp_path) -> Path:
    return tmp_path / "patterns" / "patterns.yaml"


@pytest.fixture
def store(catalog_path) -> CatalogStore:
    return CatalogStore(catalog_path)


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


def entry_line(kind: str, **fields) -> str:
    """One JSONL transcript line."""
    timestamp = fields.pop("timestamp", "2025-01-01T00:00:00Z")
    if kind in ("user", "assistant"):
        record = {
            "type": kind,
            "message": {"role": kind, "content": fields["content"]},
            "timestamp": timestamp,
        }
    elif kind == "tool_use":
        record = {
            "type": "tool_use",
            "tool_name": fields["tool_name"],
            "tool_input": fields["tool_input"],
            "timestamp": timestamp,
        }
    else:
        record = {
            "type": "tool_result",
            "tool_name": fields["tool_name"],
            "output": fields["output"],
            "timestamp": timestamp,
        }
    return json.dumps(record)


@pytest.fixture
def write_session(tmp_path):
    """Write a transcript under a fake ~/.claude/projects tree."""

    def _write(session_id: str, lines: List[str], project: str = "-home-user-demo",
               projects_dir: Path = None) -> Path:
        base = projects_dir or tmp_path / "home" / ".claude" / "projects"
        path = base / project / f"{session_id}.jsonl"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


def conversation_lines(count: int = 6) -> List[str]:
    """A plausible session with `count` valid entries."""
    lines = []
    for i in range(count):
        kind = "user" if i % 2 == 0 else "assistant"
        lines.append(entry_line(kind, content=f"message {i}"))
    return lines
