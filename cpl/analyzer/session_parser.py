"""
Session log parsing and discovery.

Claude Code writes one JSONL transcript per session under
~/.claude/projects/<encoded-project>/<session-id>.jsonl. Lines are appended
while the session runs, so the last line may be cut off mid-write; any line
that is not valid JSON or not a recognised entry is skipped silently.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from cpl.models import SessionEntry, SessionInfo, session_entry_adapter
from cpl.utils.fs import read_text_file
from cpl.utils.logging import get_logger

logger = get_logger(__name__)

SESSION_FILE_SUFFIX = ".jsonl"


def get_claude_projects_dir() -> Path:
    return Path.home() / ".claude" / "projects"


def encode_project_path(project_path: str) -> str:
    """/home/user/project -> -home-user-project"""
    return project_path.replace("/", "-")


def decode_project_path(encoded_path: str) -> str:
    """-home-user-project -> /home/user/project (lossy for paths containing '-')."""
    if encoded_path.startswith("-"):
        return encoded_path.replace("-", "/")
    return encoded_path


def _ensure_encoded(project_path: str) -> str:
    return project_path if project_path.startswith("-") else encode_project_path(project_path)


def get_session_info(session_path: Union[str, Path]) -> SessionInfo:
    path = Path(session_path)
    return SessionInfo(id=path.stem, project=path.parent.name, path=str(path))


def parse_entry(value: object) -> Optional[SessionEntry]:
    """Validate one decoded JSON value against the entry union."""
    if not isinstance(value, dict) or not isinstance(value.get("type"), str):
        return None
    try:
        return session_entry_adapter.validate_python(value)
    except ValidationError:
        return None


def parse_session_text(raw_text: str) -> List[SessionEntry]:
    """
    Parse raw JSONL transcript text into typed entries.

    Blank lines, undecodable lines and values that match none of the entry
    shapes are dropped; the remaining entries keep their original order.

    Args:
        raw_text: Full transcript contents

    Returns:
        Validated entries in input order
    """
    entries: List[SessionEntry] = []
    skipped = 0

    for line in raw_text.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue

        try:
            value = json.loads(stripped)
        except json.JSONDecodeError:
            skipped += 1
            continue

        entry = parse_entry(value)
        if entry is None:
            skipped += 1
            continue
        entries.append(entry)

    if skipped:
        logger.debug(f"Skipped {skipped} unrecognised transcript lines")

    return entries


async def parse_session_log(file_path: Union[str, Path]) -> List[SessionEntry]:
    """Read and parse a transcript file. A missing file raises FileNotFoundError."""
    content = await read_text_file(file_path)
    return parse_session_text(content)


async def list_sessions(
    project_path: Optional[str] = None,
    projects_dir: Optional[Path] = None,
) -> List[SessionInfo]:
    """
    List transcript files, newest first.

    Args:
        project_path: Only this project (raw or encoded path)
        projects_dir: Override for ~/.claude/projects

    Returns:
        Session descriptors sorted by modification time, descending
    """
    projects_dir = projects_dir or get_claude_projects_dir()
    if not projects_dir.is_dir():
        return []

    if project_path:
        project_dirs = [projects_dir / _ensure_encoded(project_path)]
    else:
        project_dirs = sorted(projects_dir.iterdir())

    sessions: List[SessionInfo] = []
    for project_dir in project_dirs:
        if not project_dir.is_dir():
            continue

        for session_file in project_dir.glob(f"*{SESSION_FILE_SUFFIX}"):
            mtime = datetime.fromtimestamp(session_file.stat().st_mtime, tz=timezone.utc)
            sessions.append(
                SessionInfo(
                    id=session_file.stem,
                    project=project_dir.name,
                    path=str(session_file),
                    timestamp=mtime.isoformat(),
                )
            )

    sessions.sort(key=lambda s: s.timestamp or "", reverse=True)
    return sessions


def _parse_since(since: str) -> datetime:
    parsed = datetime.fromisoformat(since)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def filter_sessions_by_date(sessions: List[SessionInfo], since: str) -> List[SessionInfo]:
    """Keep sessions modified at or after `since` (YYYY-MM-DD or ISO-8601)."""
    since_dt = _parse_since(since)
    return [
        s for s in sessions
        if s.timestamp and _parse_since(s.timestamp) >= since_dt
    ]


def filter_sessions_by_project(sessions: List[SessionInfo], project_path: str) -> List[SessionInfo]:
    encoded = _ensure_encoded(project_path)
    return [s for s in sessions if s.project == encoded]


def get_session_path(
    session_id: str,
    project_path: str,
    projects_dir: Optional[Path] = None,
) -> Path:
    projects_dir = projects_dir or get_claude_projects_dir()
    return projects_dir / _ensure_encoded(project_path) / f"{session_id}{SESSION_FILE_SUFFIX}"
