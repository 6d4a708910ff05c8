"""
Tests for catalog filtering and search.
"""

import pytest

from cpl.catalog.search import (
    SearchOptions,
    filter_by_tags,
    filter_by_type,
    search_by_keyword,
    search_patterns,
)
from cpl.models import Pattern


def pattern(pattern_id, name, pattern_type="solution", context="ctx", solution="sol", tags=None):
    return Pattern(
        id=pattern_id,
        name=name,
        type=pattern_type,
        context=context,
        solution=solution,
        tags=tags,
        created_at="2025-01-01T00:00:00Z",
        updated_at="2025-01-01T00:00:00Z",
    )


@pytest.fixture
def patterns():
    return [
        pattern("1", "Retry flaky calls", tags=["Network", "resilience"]),
        pattern("2", "Plan first", pattern_type="prompt", context="Large REFACTORS"),
        pattern("3", "Typed settings", pattern_type="code", solution="Use pydantic models"),
    ]


class TestFilters:
    """Test single-criterion filters."""

    def test_by_type(self, patterns):
        assert [p.id for p in filter_by_type(patterns, "prompt")] == ["2"]

    def test_keyword_in_name(self, patterns):
        assert [p.id for p in search_by_keyword(patterns, "RETRY")] == ["1"]

    def test_keyword_in_context_and_solution(self, patterns):
        assert [p.id for p in search_by_keyword(patterns, "refactor")] == ["2"]
        assert [p.id for p in search_by_keyword(patterns, "Pydantic")] == ["3"]

    def test_keyword_in_tags(self, patterns):
        assert [p.id for p in search_by_keyword(patterns, "network")] == ["1"]

    def test_empty_keyword_returns_all(self, patterns):
        assert search_by_keyword(patterns, "") == patterns

    def test_missing_tags_do_not_break_search(self, patterns):
        assert search_by_keyword(patterns, "nothing-matches") == []

    def test_by_tags_all_of(self, patterns):
        assert [p.id for p in filter_by_tags(patterns, ["network", "RESILIENCE"])] == ["1"]
        assert filter_by_tags(patterns, ["network", "other"]) == []


class TestSearchPatterns:
    """Test combined search options."""

    def test_combined(self, patterns):
        options = SearchOptions(type="solution", keyword="retry", tags=["network"])
        assert [p.id for p in search_patterns(patterns, options)] == ["1"]

    def test_no_options(self, patterns):
        assert search_patterns(patterns, SearchOptions()) == patterns

    def test_type_excludes_keyword_match(self, patterns):
        options = SearchOptions(type="code", keyword="retry")
        assert search_patterns(patterns, options) == []
