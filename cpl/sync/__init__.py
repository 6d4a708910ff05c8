"""CLAUDE.md synchronization."""

from .claude_md import (
    PATTERNS_SECTION_END,
    PATTERNS_SECTION_START,
    parse_document,
    read_document,
    write_document,
)
from .merger import (
    SyncResult,
    merge_patterns_section,
    render_pattern_detail,
    render_patterns_section,
    render_reference_block,
    select_patterns,
    sync_patterns,
)

__all__ = [
    "PATTERNS_SECTION_END",
    "PATTERNS_SECTION_START",
    "parse_document",
    "read_document",
    "write_document",
    "SyncResult",
    "merge_patterns_section",
    "render_pattern_detail",
    "render_patterns_section",
    "render_reference_block",
    "select_patterns",
    "sync_patterns",
]
