"""Pattern catalog: storage, identifier resolution, search and validation."""

from .search import SearchOptions, filter_by_type, search_by_keyword, search_patterns
from .store import CatalogStore, resolve_in
from .validator import FieldError, load_pattern_inputs, validate_pattern_input

__all__ = [
    "CatalogStore",
    "resolve_in",
    "SearchOptions",
    "filter_by_type",
    "search_by_keyword",
    "search_patterns",
    "FieldError",
    "load_pattern_inputs",
    "validate_pattern_input",
]
