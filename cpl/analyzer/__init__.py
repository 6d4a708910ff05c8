"""Session analysis: transcript parsing, sanitizing and pattern extraction."""

from .pattern_extractor import (
    SessionAnalysisResult,
    SessionAnalyzer,
    extract_patterns,
    find_duplicate_patterns,
    format_session_content,
)
from .sanitizer import sanitize
from .session_parser import list_sessions, parse_session_log, parse_session_text

__all__ = [
    "SessionAnalysisResult",
    "SessionAnalyzer",
    "extract_patterns",
    "find_duplicate_patterns",
    "format_session_content",
    "sanitize",
    "list_sessions",
    "parse_session_log",
    "parse_session_text",
]
