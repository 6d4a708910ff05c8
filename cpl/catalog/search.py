"""Filtering and keyword search over catalog contents."""

from dataclasses import dataclass, field
from typing import List, Optional

from cpl.models import Pattern


@dataclass
class SearchOptions:
    type: Optional[str] = None
    keyword: Optional[str] = None
    tags: List[str] = field(default_factory=list)


def filter_by_type(patterns: List[Pattern], pattern_type: str) -> List[Pattern]:
    return [p for p in patterns if p.type == pattern_type]


def search_by_keyword(patterns: List[Pattern], keyword: str) -> List[Pattern]:
    """
    Case-insensitive substring search over name, context, solution and tags.

    An empty keyword returns every pattern.
    """
    if not keyword:
        return list(patterns)

    needle = keyword.lower()

    def matches(p: Pattern) -> bool:
        if needle in p.name.lower():
            return True
        if needle in p.context.lower():
            return True
        if needle in p.solution.lower():
            return True
        return any(needle in tag.lower() for tag in p.tags or [])

    return [p for p in patterns if matches(p)]


def filter_by_tags(patterns: List[Pattern], tags: List[str]) -> List[Pattern]:
    """Keep patterns carrying every one of the given tags (case-insensitive)."""
    wanted = {t.lower() for t in tags}
    return [p for p in patterns if wanted <= {t.lower() for t in p.tags or []}]


def search_patterns(patterns: List[Pattern], options: SearchOptions) -> List[Pattern]:
    results = list(patterns)
    if options.type:
        results = filter_by_type(results, options.type)
    if options.keyword:
        results = search_by_keyword(results, options.keyword)
    if options.tags:
        results = filter_by_tags(results, options.tags)
    return results
