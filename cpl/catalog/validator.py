"""
Validation of user-supplied pattern input (files and interactive prompts).

Unlike model output, user input is not silently dropped: every problem is
reported per field so the caller can show it.
"""

from dataclasses import dataclass
from typing import Any, List

from cpl.models import PATTERN_TYPES, PatternInput
from cpl.utils.errors import PatternValidationError
from cpl.utils.fs import load_yaml


@dataclass
class FieldError:
    field: str
    message: str


def validate_pattern_input(data: Any) -> List[FieldError]:
    """
    Check a raw mapping against the PatternInput contract.

    Returns:
        One FieldError per problem; empty when the input is valid
    """
    if not isinstance(data, dict):
        return [FieldError("pattern", "pattern must be a mapping")]

    errors: List[FieldError] = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append(FieldError("name", "name is required"))

    if data.get("type") not in PATTERN_TYPES:
        errors.append(FieldError("type", f"type must be one of {', '.join(PATTERN_TYPES)}"))

    context = data.get("context")
    if not isinstance(context, str) or not context.strip():
        errors.append(FieldError("context", "context is required"))

    solution = data.get("solution")
    if not isinstance(solution, str) or not solution.strip():
        errors.append(FieldError("solution", "solution is required"))

    for text_field in ("problem", "example", "example_prompt"):
        value = data.get(text_field)
        if value is not None and not isinstance(value, str):
            errors.append(FieldError(text_field, f"{text_field} must be text"))

    for list_field in ("related", "tags"):
        value = data.get(list_field)
        if value is not None and not (
            isinstance(value, list) and all(isinstance(v, str) for v in value)
        ):
            errors.append(FieldError(list_field, f"{list_field} must be a list of strings"))

    return errors


def to_pattern_input(data: Any) -> PatternInput:
    """Validate and convert, raising PatternValidationError on any problem."""
    errors = validate_pattern_input(data)
    if errors:
        raise PatternValidationError(errors)
    return PatternInput(**{k: v for k, v in data.items() if k in PatternInput.model_fields})


def load_pattern_inputs(yaml_text: str) -> List[PatternInput]:
    """
    Read patterns from YAML: a single mapping, a list, or {patterns: [...]}.

    Raises:
        PatternValidationError: If any pattern is invalid (nothing is returned)
        yaml.YAMLError: If the text is not valid YAML
    """
    data = load_yaml(yaml_text)
    if isinstance(data, dict) and "patterns" in data:
        items = data["patterns"] or []
    elif isinstance(data, list):
        items = data
    elif data is None:
        items = []
    else:
        items = [data]

    return [to_pattern_input(item) for item in items]
