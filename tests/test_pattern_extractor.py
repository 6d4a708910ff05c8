"""
Tests for pattern extraction and batch session analysis.
"""

import json

import pytest

from conftest import FakeCompletionClient, conversation_lines, entry_line
from cpl.analyzer.pattern_extractor import (
    MAX_TOOL_RESULT_LENGTH,
    SessionAnalyzer,
    extract_patterns,
    find_duplicate_patterns,
    format_session_content,
    render_entry,
)
from cpl.analyzer.session_parser import get_session_info, parse_session_text
from cpl.models import (
    AssistantEntry,
    AssistantMessage,
    PatternInput,
    ToolResultEntry,
    ToolUseEntry,
    UserEntry,
    UserMessage,
)

TS = "2025-01-01T00:00:00Z"


def user(content):
    return UserEntry(type="user", message=UserMessage(role="user", content=content), timestamp=TS)


def assistant(content):
    return AssistantEntry(
        type="assistant", message=AssistantMessage(role="assistant", content=content), timestamp=TS
    )


def pattern_input(name, pattern_type="solution"):
    return PatternInput(name=name, type=pattern_type, context="ctx", solution="sol")


def response_with(*names):
    items = "".join(
        f"  - name: {name}\n    type: solution\n    context: c\n    solution: s\n" for name in names
    )
    return f"```yaml\npatterns:\n{items}```"


class TestFormatSessionContent:
    """Test transcript rendering."""

    def test_renders_every_variant(self):
        entries = [
            user("hi"),
            assistant("hello"),
            ToolUseEntry(type="tool_use", tool_name="Bash", tool_input={"command": "ls"}, timestamp=TS),
            ToolResultEntry(type="tool_result", tool_name="Bash", output="a.txt", timestamp=TS),
        ]

        content = format_session_content(entries)

        assert content == (
            "[user]\nhi\n\n"
            "[assistant]\nhello\n\n"
            '[tool_use: Bash]\n{\n  "command": "ls"\n}\n\n'
            "[tool_result: Bash]\na.txt"
        )

    def test_tool_input_values_masked_before_encoding(self):
        entry = ToolUseEntry(
            type="tool_use",
            tool_name="Bash",
            tool_input={"command": "curl -H 'Authorization: Bearer abc123' https://x", "timeout": 30},
            timestamp=TS,
        )

        header, body = render_entry(entry).split("\n", 1)

        assert header == "[tool_use: Bash]"
        assert json.loads(body) == {
            "command": "curl -H 'Authorization: [REDACTED] https://x",
            "timeout": 30,
        }

    def test_long_tool_result_truncated(self):
        entry = ToolResultEntry(type="tool_result", tool_name="Read", output="x" * 10_000, timestamp=TS)
        label = "[tool_result: Read]\n"

        block = render_entry(entry)

        assert block == label + "x" * MAX_TOOL_RESULT_LENGTH + "..."
        assert len(block) <= len(label) + MAX_TOOL_RESULT_LENGTH + len("...")

    def test_truncation_is_per_entry(self):
        entries = [
            ToolResultEntry(type="tool_result", tool_name="Grep", output="a" * 600, timestamp=TS),
            ToolResultEntry(type="tool_result", tool_name="Grep", output="b" * 600, timestamp=TS),
        ]
        content = format_session_content(entries)

        assert content.count("a") == MAX_TOOL_RESULT_LENGTH
        assert content.count("b") == MAX_TOOL_RESULT_LENGTH

    def test_exact_limit_not_truncated(self):
        entry = ToolResultEntry(
            type="tool_result", tool_name="Read", output="y" * MAX_TOOL_RESULT_LENGTH, timestamp=TS
        )
        assert not render_entry(entry).endswith("...")


class TestFindDuplicatePatterns:
    """Test name-based duplicate detection."""

    def test_case_insensitive(self):
        new = [pattern_input("Retry Calls"), pattern_input("Fresh")]
        existing = [pattern_input("retry calls")]

        assert [p.name for p in find_duplicate_patterns(new, existing)] == ["Retry Calls"]


class TestExtractPatterns:
    """Test the extraction pipeline."""

    @pytest.mark.asyncio
    async def test_empty_entries_skip_completion(self, fake_client):
        result = await extract_patterns([], [], fake_client)

        assert result == []
        assert fake_client.prompts == []

    @pytest.mark.asyncio
    async def test_single_completion_call(self):
        client = FakeCompletionClient([response_with("One", "Two")])

        result = await extract_patterns([user("hi")], [], client)

        assert [p.name for p in result] == ["One", "Two"]
        assert len(client.prompts) == 1

    @pytest.mark.asyncio
    async def test_prompt_is_sanitized(self):
        client = FakeCompletionClient()

        await extract_patterns([user("use api_key=sk-ABC123XYZ here")], [], client)

        assert "sk-ABC123XYZ" not in client.prompts[0]
        assert "[REDACTED]" in client.prompts[0]

    @pytest.mark.asyncio
    async def test_existing_names_removed(self):
        client = FakeCompletionClient([response_with("Known", "New One", "KNOWN")])
        existing = [pattern_input("known")]

        result = await extract_patterns([user("hi")], existing, client)

        assert [p.name for p in result] == ["New One"]
        names = {p.name.lower() for p in existing}
        assert all(p.name.lower() not in names for p in result)

    @pytest.mark.asyncio
    async def test_malformed_response_degrades(self):
        client = FakeCompletionClient(["I could not find anything useful."])

        assert await extract_patterns([user("hi")], [], client) == []

    @pytest.mark.asyncio
    async def test_out_of_range_date_does_not_abort(self):
        response = (
            "patterns:\n"
            "  - {name: Good, type: code, context: c, solution: s}\n"
            "  - {name: Dated, type: code, context: 2024-13-45, solution: s}\n"
        )
        client = FakeCompletionClient([response])

        result = await extract_patterns([user("hi")], [], client)

        assert [p.name for p in result] == ["Good"]

    @pytest.mark.asyncio
    async def test_completion_failure_propagates(self):
        error = ConnectionError("provider down")
        client = FakeCompletionClient(error=error)

        with pytest.raises(ConnectionError) as exc_info:
            await extract_patterns([user("hi")], [], client)

        assert exc_info.value is error
        assert len(client.prompts) == 1


class TestSessionAnalyzer:
    """Test sequential batch analysis."""

    @pytest.mark.asyncio
    async def test_saves_and_dedupes_across_sessions(self, store, write_session):
        first = get_session_info(write_session("s1", conversation_lines(6)))
        second = get_session_info(write_session("s2", conversation_lines(6)))
        client = FakeCompletionClient([response_with("Shared", "Only First"), response_with("shared", "Only Second")])

        results = await SessionAnalyzer(store, client).analyze_sessions([first, second], min_entries=5)

        assert [p.name for p in results[0].saved] == ["Shared", "Only First"]
        assert [p.name for p in results[1].saved] == ["Only Second"]

        stored = await store.list()
        assert [p.name for p in stored] == ["Shared", "Only First", "Only Second"]
        assert stored[0].source_sessions == ["s1"]
        assert stored[2].source_sessions == ["s2"]

    @pytest.mark.asyncio
    async def test_short_sessions_skipped(self, store, write_session):
        short = get_session_info(write_session("short", conversation_lines(2)))
        client = FakeCompletionClient()

        results = await SessionAnalyzer(store, client).analyze_sessions([short], min_entries=5)

        assert results[0].skipped
        assert results[0].entry_count == 2
        assert client.prompts == []

    @pytest.mark.asyncio
    async def test_dry_run_saves_nothing(self, store, write_session):
        first = get_session_info(write_session("s1", conversation_lines(6)))
        second = get_session_info(write_session("s2", conversation_lines(6)))
        client = FakeCompletionClient([response_with("A"), response_with("a", "B")])

        results = await SessionAnalyzer(store, client).analyze_sessions([first, second], dry_run=True)

        assert [p.name for p in results[0].patterns] == ["A"]
        assert [p.name for p in results[1].patterns] == ["B"]
        assert results[0].saved == []
        assert await store.list() == []

    @pytest.mark.asyncio
    async def test_failure_stops_batch_and_keeps_earlier_work(self, store, write_session):
        first = get_session_info(write_session("s1", conversation_lines(6)))
        second = get_session_info(write_session("s2", conversation_lines(6)))
        third = get_session_info(write_session("s3", conversation_lines(6)))

        class FailsSecond(FakeCompletionClient):
            async def complete(self, prompt):
                self.prompts.append(prompt)
                if len(self.prompts) == 2:
                    raise RuntimeError("boom")
                return response_with(f"P{len(self.prompts)}")

        client = FailsSecond()

        with pytest.raises(RuntimeError):
            await SessionAnalyzer(store, client).analyze_sessions([first, second, third])

        assert len(client.prompts) == 2
        assert [p.name for p in await store.list()] == ["P1"]

    @pytest.mark.asyncio
    async def test_renders_parsed_log(self, store, write_session):
        lines = [
            entry_line("user", content="run tests"),
            entry_line("tool_use", tool_name="Bash", tool_input={"command": "pytest"}),
            entry_line("tool_result", tool_name="Bash", output="1 passed"),
        ]
        session = get_session_info(write_session("s1", lines))
        client = FakeCompletionClient()

        await SessionAnalyzer(store, client).analyze_sessions([session])

        assert "[tool_use: Bash]" in client.prompts[0]
        assert "1 passed" in client.prompts[0]
        assert len(parse_session_text("\n".join(lines))) == 3
