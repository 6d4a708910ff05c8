"""
Projection of the pattern catalog into CLAUDE.md.

The full pattern listing goes to a side detail file that is regenerated on
every sync. The primary document only carries a short reference block
between the sentinel markers, or the inlined listing when requested.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from cpl.catalog.store import CatalogStore
from cpl.models import ClaudeMdContent, Pattern
from cpl.sync.claude_md import (
    PATTERNS_SECTION_END,
    PATTERNS_SECTION_START,
    has_marker_line,
    read_document,
    save_document,
    write_document,
)
from cpl.utils.errors import PatternNotFoundError, UnpairedMarkerError
from cpl.utils.fs import write_text_file
from cpl.utils.logging import get_logger

logger = get_logger(__name__)

PATTERNS_HEADER = "## Patterns"
NO_PATTERNS_PLACEHOLDER = "No patterns registered yet."


def _pattern_lines(pattern: Pattern) -> List[str]:
    lines = [
        f"### {pattern.name}",
        f"**Type**: {pattern.type}",
        f"**Context**: {pattern.context}",
    ]
    if pattern.problem:
        lines.append(f"**Problem**: {pattern.problem}")
    lines.append(f"**Solution**: {pattern.solution}")
    if pattern.example:
        lines.append(f"**Example**: {pattern.example}")
    if pattern.example_prompt:
        lines.append(f"**Example Prompt**: {pattern.example_prompt}")
    if pattern.related:
        lines.append(f"**Related**: {', '.join(pattern.related)}")
    if pattern.tags:
        lines.append(f"**Tags**: {', '.join(pattern.tags)}")
    return lines


def _detail_lines(patterns: Sequence[Pattern]) -> List[str]:
    lines = [PATTERNS_HEADER, ""]
    if not patterns:
        lines.append(NO_PATTERNS_PLACEHOLDER)
        return lines

    for pattern in patterns:
        lines.extend(_pattern_lines(pattern))
        lines.append("")
    return lines


def render_pattern_detail(patterns: Sequence[Pattern]) -> str:
    """Render the patterns as markdown, one ``###`` block per pattern."""
    return "\n".join(_detail_lines(patterns)).rstrip("\n") + "\n"


def render_patterns_section(patterns: Sequence[Pattern]) -> str:
    """Render the listing wrapped in the sentinel markers."""
    return "\n".join([PATTERNS_SECTION_START, *_detail_lines(patterns), PATTERNS_SECTION_END])


def render_reference_block(reference_path: str) -> str:
    return f"{PATTERNS_SECTION_START}\n@{reference_path}\n{PATTERNS_SECTION_END}"


def merge_patterns_section(content: ClaudeMdContent,
                           new_section: str,
                           insert_if_missing: bool) -> ClaudeMdContent:
    """
    Put ``new_section`` in place of the document's patterns section.

    A document without markers gets the section appended after a blank line
    when ``insert_if_missing`` is set; otherwise it is returned unchanged.
    A document holding an unpaired marker line is never appended to.
    """
    if content.patterns_section is not None:
        return ClaudeMdContent(
            before_patterns=content.before_patterns,
            patterns_section=new_section,
            after_patterns=content.after_patterns,
        )

    if not insert_if_missing or has_marker_line(content.before_patterns):
        return content

    existing = content.before_patterns
    if not existing or existing.endswith("\n\n"):
        prefix = existing
    elif existing.endswith("\n"):
        prefix = existing + "\n"
    else:
        prefix = existing + "\n\n"

    return ClaudeMdContent(before_patterns=prefix, patterns_section=new_section, after_patterns="\n")


async def select_patterns(store: CatalogStore, identifiers: Sequence[str]) -> List[Pattern]:
    """
    Resolve the patterns to sync.

    No identifiers selects the whole catalog. Every identifier must resolve,
    so a partial sync never writes anything when one of them is unknown.

    Raises:
        PatternNotFoundError: If an identifier matches nothing
        AmbiguousIdentifierError: If an identifier is an ambiguous id prefix
    """
    if not identifiers:
        return await store.list()

    selected: List[Pattern] = []
    seen = set()
    for identifier in identifiers:
        pattern = await store.resolve(identifier)
        if pattern is None:
            raise PatternNotFoundError(identifier)
        if pattern.id not in seen:
            seen.add(pattern.id)
            selected.append(pattern)
    return selected


@dataclass
class SyncResult:
    """What a sync did, or would do in dry-run mode."""
    document_path: Path
    detail_path: Optional[Path]
    patterns: List[Pattern] = field(default_factory=list)
    detail_content: str = ""
    new_document: str = ""
    changed: bool = False
    markers_missing: bool = False
    dry_run: bool = False


async def sync_patterns(store: CatalogStore,
                        document_path: Union[str, Path],
                        detail_path: Union[str, Path],
                        reference_path: str,
                        identifiers: Sequence[str] = (),
                        dry_run: bool = False,
                        inline: bool = False) -> SyncResult:
    """
    Sync catalog patterns into a CLAUDE.md document.

    Args:
        store: Catalog to read from
        document_path: The CLAUDE.md to update
        detail_path: Side file receiving the full listing
        reference_path: Path written into the reference block
        identifiers: Subset to sync; empty means every pattern
        dry_run: Compute the result without writing anything
        inline: Put the listing itself between the markers, no detail file

    Returns:
        SyncResult describing the new document and whether it changed

    Raises:
        UnpairedMarkerError: If the document has a marker line but no usable section
    """
    document_path = Path(document_path)
    patterns = await select_patterns(store, identifiers)

    if inline:
        section = render_patterns_section(patterns)
        detail_content = ""
    else:
        section = render_reference_block(reference_path)
        detail_content = render_pattern_detail(patterns)

    document = await read_document(document_path)
    if document.patterns_section is None and has_marker_line(document.before_patterns):
        raise UnpairedMarkerError(str(document_path))

    merged = merge_patterns_section(document, section, insert_if_missing=not dry_run)

    new_document = write_document(merged)
    changed = new_document != write_document(document)

    result = SyncResult(
        document_path=document_path,
        detail_path=None if inline else Path(detail_path),
        patterns=patterns,
        detail_content=detail_content,
        new_document=new_document,
        changed=changed,
        markers_missing=document.patterns_section is None,
        dry_run=dry_run,
    )

    if dry_run:
        logger.info(f"Dry run: {document_path} would {'change' if changed else 'stay unchanged'}")
        return result

    if not inline:
        await write_text_file(detail_path, detail_content)
        logger.info(f"Wrote {len(patterns)} pattern(s) to {detail_path}")

    if changed:
        await save_document(document_path, merged)
        logger.info(f"Updated {document_path}")

    return result
