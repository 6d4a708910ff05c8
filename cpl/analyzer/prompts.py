"""
Prompt construction and response parsing for pattern extraction.

Model output is untrusted: a payload that cannot be decoded yields no
patterns, and an individual item that breaks the output contract is dropped
without affecting the rest of the batch.
"""

import re
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from cpl.models import PATTERN_TYPES, PatternInput
from cpl.utils.fs import load_yaml
from cpl.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PATTERNS_PER_SESSION = 5

REQUIRED_FIELDS = ("name", "context", "solution")
OPTIONAL_TEXT_FIELDS = ("problem", "example", "example_prompt")
OPTIONAL_LIST_FIELDS = ("related", "tags")

CODE_BLOCK_RE = re.compile(r"```(?:[A-Za-z]+)?\s*([\s\S]*?)```")


def build_extract_prompt(session_content: str) -> str:
    """Build the extraction prompt around an already-sanitized transcript."""
    return f"""You are an expert in software development patterns.
Analyze the following Claude Code session log and extract reusable patterns.

## What to extract

1. **Prompt patterns** (type: prompt)
   - Instruction structures or phrasings that worked well
   - Prompting techniques that reliably produced a specific result

2. **Problem-solving patterns** (type: solution)
   - Investigation or debugging procedures that were repeated
   - Approaches that solved a specific kind of problem

3. **Code patterns** (type: code)
   - Project-specific coding idioms
   - Structures or templates that were generated repeatedly

## Output format

Respond with YAML in the following format. If no patterns are found, return an empty list.

```yaml
patterns:
  - name: Short, recognisable pattern name
    type: prompt | solution | code
    context: When to use it (1-2 sentences)
    problem: The problem it solves (optional, 1 sentence)
    solution: Summary of the solution (2-3 sentences)
    example: Concrete usage example (optional)
    example_prompt: Example prompt (for type=prompt)
    related: [names of related patterns]
    tags: [related tags]
```

## Rules

- Avoid overly generic patterns (e.g. just "error handling"); describe the concrete technique
- When project-specific context matters, state it in `context`
- Never include secrets (API keys, passwords, internal URLs, etc.)
- Extract at most {MAX_PATTERNS_PER_SESSION} patterns from one session

## Session log

{session_content}"""


def extract_payload(response: str) -> str:
    """Return the first fenced code block's body, or the whole response."""
    match = CODE_BLOCK_RE.search(response)
    if match:
        return match.group(1).strip()
    return response.strip()


def _coerce_item(raw: Any) -> Optional[PatternInput]:
    if not isinstance(raw, dict):
        return None

    for field in REQUIRED_FIELDS:
        value = raw.get(field)
        if not isinstance(value, str) or not value.strip():
            return None

    if raw.get("type") not in PATTERN_TYPES:
        return None

    data: Dict[str, Any] = {
        "name": raw["name"],
        "type": raw["type"],
        "context": raw["context"],
        "solution": raw["solution"],
    }

    for field in OPTIONAL_TEXT_FIELDS:
        if isinstance(raw.get(field), str):
            data[field] = raw[field]

    for field in OPTIONAL_LIST_FIELDS:
        if isinstance(raw.get(field), list):
            data[field] = [item for item in raw[field] if isinstance(item, str)]

    try:
        return PatternInput(**data)
    except ValidationError:
        return None


def parse_extract_response(response: str) -> List[PatternInput]:
    """
    Parse a completion response into pattern inputs.

    Args:
        response: Raw model text, optionally wrapping the payload in a fenced block

    Returns:
        Valid patterns in response order (empty if the payload is unusable)
    """
    try:
        parsed = load_yaml(extract_payload(response))
    except (yaml.YAMLError, ValueError) as e:
        logger.debug(f"Unparseable extraction response: {e}")
        return []

    if not isinstance(parsed, dict) or not isinstance(parsed.get("patterns"), list):
        return []

    patterns: List[PatternInput] = []
    for index, item in enumerate(parsed["patterns"]):
        pattern = _coerce_item(item)
        if pattern is None:
            logger.debug(f"Discarded malformed pattern item #{index}")
            continue
        patterns.append(pattern)

    return patterns
