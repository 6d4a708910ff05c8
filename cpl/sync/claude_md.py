"""
Splitting a CLAUDE.md document around the machine-managed patterns section.

Everything outside the sentinel markers belongs to the user and is carried
through byte for byte. Markers only count when they stand on a line of their
own; a marker quoted inside prose or code is ordinary text.
"""

import re
from pathlib import Path
from typing import List, Union

from cpl.models import ClaudeMdContent
from cpl.utils.fs import read_text_file, write_text_file

PATTERNS_SECTION_START = "<!-- CPL:PATTERNS:START -->"
PATTERNS_SECTION_END = "<!-- CPL:PATTERNS:END -->"


def _marker_line_re(marker: str) -> "re.Pattern[str]":
    return re.compile(rf"^{re.escape(marker)}[ \t]*\r?$", re.MULTILINE)


START_LINE_RE = _marker_line_re(PATTERNS_SECTION_START)
END_LINE_RE = _marker_line_re(PATTERNS_SECTION_END)


def _line_offsets(pattern: "re.Pattern[str]", raw: str) -> List[int]:
    return [m.start() for m in pattern.finditer(raw)]


def has_marker_line(text: str) -> bool:
    """Whether either sentinel marker stands on a line of its own in text."""
    return bool(START_LINE_RE.search(text) or END_LINE_RE.search(text))


def parse_document(raw: str) -> ClaudeMdContent:
    """
    Split a document at its patterns section.

    The section runs from a start marker line to the first end marker line
    after it; when several start lines precede that end line, the last one
    opens the section. The section includes both markers. Without such a
    pair the whole document is ``before_patterns``.
    """
    starts = _line_offsets(START_LINE_RE, raw)

    for end in _line_offsets(END_LINE_RE, raw):
        preceding = [s for s in starts if s < end]
        if not preceding:
            continue

        start = preceding[-1]
        end += len(PATTERNS_SECTION_END)
        return ClaudeMdContent(
            before_patterns=raw[:start],
            patterns_section=raw[start:end],
            after_patterns=raw[end:],
        )

    return ClaudeMdContent(before_patterns=raw, patterns_section=None, after_patterns="")


def write_document(content: ClaudeMdContent) -> str:
    return content.before_patterns + (content.patterns_section or "") + content.after_patterns


async def read_document(path: Union[str, Path]) -> ClaudeMdContent:
    """Read and split a document; a missing file is an empty document."""
    try:
        raw = await read_text_file(path)
    except FileNotFoundError:
        raw = ""
    return parse_document(raw)


async def save_document(path: Union[str, Path], content: ClaudeMdContent) -> None:
    await write_text_file(path, write_document(content))
