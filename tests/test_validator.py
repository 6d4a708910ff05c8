"""
Tests for user pattern input validation.
"""

import pytest
import yaml

from cpl.catalog.validator import load_pattern_inputs, to_pattern_input, validate_pattern_input
from cpl.utils.errors import PatternValidationError

VALID = {
    "name": "Retry flaky calls",
    "type": "solution",
    "context": "Network calls in tests",
    "solution": "Wrap with bounded retries",
}


class TestValidatePatternInput:
    """Test field-level validation."""

    def test_valid(self):
        assert validate_pattern_input(VALID) == []

    def test_not_a_mapping(self):
        errors = validate_pattern_input(["name"])
        assert [e.field for e in errors] == ["pattern"]

    def test_missing_required_fields(self):
        errors = validate_pattern_input({"type": "code"})
        assert [e.field for e in errors] == ["name", "context", "solution"]

    def test_blank_and_bad_type(self):
        errors = validate_pattern_input({**VALID, "name": "  ", "type": "recipe"})
        assert [e.field for e in errors] == ["name", "type"]

    def test_optional_field_types(self):
        errors = validate_pattern_input({**VALID, "problem": 3, "tags": "a,b", "related": ["ok", 1]})
        assert [e.field for e in errors] == ["problem", "related", "tags"]


class TestToPatternInput:
    """Test conversion."""

    def test_converts_and_ignores_unknown_keys(self):
        result = to_pattern_input({**VALID, "tags": ["net"], "id": "ignored"})

        assert result.name == "Retry flaky calls"
        assert result.tags == ["net"]

    def test_raises_with_field_errors(self):
        with pytest.raises(PatternValidationError) as exc_info:
            to_pattern_input({"name": "x"})

        assert [e.field for e in exc_info.value.errors] == ["type", "context", "solution"]


class TestLoadPatternInputs:
    """Test YAML input shapes."""

    def test_single_mapping(self):
        assert len(load_pattern_inputs(yaml.safe_dump(VALID))) == 1

    def test_list(self):
        assert len(load_pattern_inputs(yaml.safe_dump([VALID, VALID]))) == 2

    def test_patterns_key(self):
        text = yaml.safe_dump({"patterns": [VALID, {**VALID, "name": "Second"}]})
        assert [p.name for p in load_pattern_inputs(text)] == ["Retry flaky calls", "Second"]

    def test_empty(self):
        assert load_pattern_inputs("") == []
        assert load_pattern_inputs("patterns:\n") == []

    def test_one_invalid_rejects_all(self):
        text = yaml.safe_dump([VALID, {"name": "broken"}])
        with pytest.raises(PatternValidationError):
            load_pattern_inputs(text)

    def test_out_of_range_date_is_a_field_error(self):
        text = "name: Dated\ntype: code\ncontext: 2024-13-45\nsolution: s\n"

        with pytest.raises(PatternValidationError) as exc_info:
            load_pattern_inputs(text)

        assert [e.field for e in exc_info.value.errors] == ["context"]
