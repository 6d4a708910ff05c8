"""
Pattern extraction from parsed sessions.

One completion call per session, explicit steps:
render -> sanitize -> prompt -> complete -> parse -> dedup.
Completion failures propagate unchanged; bad model output degrades to fewer
(or no) patterns.
"""

from dataclasses import dataclass, field
import json
from typing import List, Optional, Sequence

from cpl.analyzer.prompts import build_extract_prompt, parse_extract_response
from cpl.analyzer.sanitizer import sanitize, sanitize_object
from cpl.analyzer.session_parser import parse_session_log
from cpl.catalog.store import CatalogStore
from cpl.llm.client import CompletionClient
from cpl.models import (
    AssistantEntry,
    Pattern,
    PatternInput,
    SessionEntry,
    SessionInfo,
    ToolResultEntry,
    ToolUseEntry,
    UserEntry,
)
from cpl.utils.logging import LogContext, get_logger, log_performance

logger = get_logger(__name__)

MAX_TOOL_RESULT_LENGTH = 500
TRUNCATION_MARKER = "..."


def truncate_output(output: str, limit: int = MAX_TOOL_RESULT_LENGTH) -> str:
    if len(output) > limit:
        return output[:limit] + TRUNCATION_MARKER
    return output


def render_entry(entry: SessionEntry) -> str:
    """Render one entry as a labeled block."""
    if isinstance(entry, UserEntry):
        return f"[user]\n{entry.message.content}"
    if isinstance(entry, AssistantEntry):
        return f"[assistant]\n{entry.message.content}"
    if isinstance(entry, ToolUseEntry):
        # mask string values before encoding
        tool_input = json.dumps(sanitize_object(entry.tool_input), indent=2, ensure_ascii=False)
        return f"[tool_use: {entry.tool_name}]\n{tool_input}"
    if isinstance(entry, ToolResultEntry):
        return f"[tool_result: {entry.tool_name}]\n{truncate_output(entry.output)}"
    raise TypeError(f"Unknown session entry type: {type(entry).__name__}")


def format_session_content(entries: Sequence[SessionEntry]) -> str:
    """Render entries into a single document, blocks separated by a blank line."""
    return "\n\n".join(render_entry(entry) for entry in entries)


def find_duplicate_patterns(new_patterns: Sequence[PatternInput],
                            existing_patterns: Sequence[PatternInput]) -> List[PatternInput]:
    """Return the new patterns whose name case-insensitively equals an existing name."""
    existing_names = {p.name.lower() for p in existing_patterns}
    return [p for p in new_patterns if p.name.lower() in existing_names]


@log_performance
async def extract_patterns(entries: Sequence[SessionEntry],
                           existing_patterns: Sequence[PatternInput],
                           client: CompletionClient) -> List[PatternInput]:
    """
    Extract new patterns from a session.

    Args:
        entries: Parsed session entries
        existing_patterns: Catalog contents used for name dedup
        client: Completion capability (called exactly once unless entries is empty)

    Returns:
        Patterns in response order, minus malformed items and known names
    """
    if not entries:
        return []

    content = sanitize(format_session_content(entries))
    prompt = build_extract_prompt(content)

    logger.debug(f"Requesting extraction for {len(entries)} entries ({len(prompt)} chars)")
    response = await client.complete(prompt)

    extracted = parse_extract_response(response)
    duplicate_names = {p.name.lower() for p in find_duplicate_patterns(extracted, existing_patterns)}
    if duplicate_names:
        logger.info(f"Skipping {len(duplicate_names)} pattern name(s) already in the catalog")

    return [p for p in extracted if p.name.lower() not in duplicate_names]


@dataclass
class SessionAnalysisResult:
    """Outcome of analyzing one session."""
    session: SessionInfo
    entry_count: int
    patterns: List[PatternInput] = field(default_factory=list)
    saved: List[Pattern] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None


class SessionAnalyzer:
    """
    Analyze sessions one after another and store what they yield.

    Sessions are never analyzed concurrently. A failure on one session stops
    the batch; patterns saved for earlier sessions stay saved.
    """

    def __init__(self, store: CatalogStore, client: CompletionClient):
        self.store = store
        self.client = client

    async def analyze_session(self,
                              session: SessionInfo,
                              dry_run: bool = False,
                              min_entries: int = 0,
                              pending: Sequence[PatternInput] = ()) -> SessionAnalysisResult:
        with LogContext(session_id=session.id):
            entries = await parse_session_log(session.path)

            if not entries or len(entries) < min_entries:
                logger.info(f"Session {session.id}: {len(entries)} entries, skipped")
                return SessionAnalysisResult(
                    session=session,
                    entry_count=len(entries),
                    skipped_reason=f"fewer than {max(min_entries, 1)} entries",
                )

            existing = list(await self.store.list()) + list(pending)
            patterns = await extract_patterns(entries, existing, self.client)
            logger.info(f"Session {session.id}: extracted {len(patterns)} pattern(s)")

            result = SessionAnalysisResult(session=session, entry_count=len(entries), patterns=patterns)
            if not dry_run:
                for pattern in patterns:
                    result.saved.append(await self.store.create(pattern, source_session=session.id))

            return result

    async def analyze_sessions(self,
                               sessions: Sequence[SessionInfo],
                               dry_run: bool = False,
                               min_entries: int = 0) -> List[SessionAnalysisResult]:
        """
        Analyze sessions in order.

        In dry-run mode nothing is stored, but names extracted from earlier
        sessions still dedupe later ones.
        """
        results: List[SessionAnalysisResult] = []
        pending: List[PatternInput] = []

        for index, session in enumerate(sessions, start=1):
            logger.info(f"Analyzing session {index}/{len(sessions)}: {session.id}")
            result = await self.analyze_session(
                session, dry_run=dry_run, min_entries=min_entries, pending=pending
            )
            if dry_run:
                pending.extend(result.patterns)
            results.append(result)

        return results
