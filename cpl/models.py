"""
Core data models for the claude-patterns toolkit.

This module defines the pydantic models used throughout the application:
transcript entries (a discriminated union validated once at the parse
boundary), pattern records and the catalog, plus the small dataclasses
passed between the sync stages.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter, field_validator

SHORT_ID_LENGTH = 8


# =============================================================================
# Session Entries
# =============================================================================


class UserMessage(BaseModel):
    role: Literal["user"]
    content: StrictStr


class AssistantMessage(BaseModel):
    role: Literal["assistant"]
    content: StrictStr


class UserEntry(BaseModel):
    """A user turn."""

    type: Literal["user"]
    message: UserMessage
    timestamp: StrictStr


class AssistantEntry(BaseModel):
    """An assistant turn."""

    type: Literal["assistant"]
    message: AssistantMessage
    timestamp: StrictStr


class ToolUseEntry(BaseModel):
    """A tool invocation with its JSON input object."""

    type: Literal["tool_use"]
    tool_name: StrictStr
    tool_input: Dict[str, Any]
    timestamp: StrictStr


class ToolResultEntry(BaseModel):
    """The textual output of a tool invocation."""

    type: Literal["tool_result"]
    tool_name: StrictStr
    output: StrictStr
    timestamp: StrictStr


SessionEntry = Annotated[
    Union[UserEntry, AssistantEntry, ToolUseEntry, ToolResultEntry],
    Field(discriminator="type"),
]

session_entry_adapter: TypeAdapter = TypeAdapter(SessionEntry)


# =============================================================================
# Patterns
# =============================================================================


class PatternType(str, Enum):
    """Kinds of reusable patterns."""

    PROMPT = "prompt"
    SOLUTION = "solution"
    CODE = "code"


PATTERN_TYPES = [t.value for t in PatternType]


class PatternInput(BaseModel):
    """Pre-persistence shape of a pattern (no id, no timestamps)."""

    model_config = ConfigDict(use_enum_values=True)

    name: str
    type: PatternType
    context: str
    problem: Optional[str] = None
    solution: str
    example: Optional[str] = None
    example_prompt: Optional[str] = None
    related: Optional[List[str]] = None
    tags: Optional[List[str]] = None

    @field_validator("name", "context", "solution")
    @classmethod
    def not_blank(cls, v: str, info) -> str:
        if not v.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return v

    def to_record(self) -> Dict[str, Any]:
        """Serialize without absent optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class Pattern(PatternInput):
    """A stored pattern. Names are not unique; ids are."""

    id: str
    created_at: str
    updated_at: str
    source_sessions: Optional[List[str]] = None

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def timestamp_as_string(cls, v: Any) -> Any:
        # Unquoted timestamps in hand-edited YAML load as datetime objects
        if isinstance(v, datetime):
            return v.isoformat()
        return v

    @property
    def short_id(self) -> str:
        return self.id[:SHORT_ID_LENGTH]


class PatternCatalog(BaseModel):
    """Ordered collection of every stored pattern."""

    patterns: List[Pattern] = Field(default_factory=list)

    def to_record(self) -> Dict[str, Any]:
        return {"patterns": [p.to_record() for p in self.patterns]}


# =============================================================================
# Sessions on disk / documents
# =============================================================================


@dataclass
class SessionInfo:
    """A transcript file discovered under the projects directory."""

    id: str
    project: str
    path: str
    timestamp: Optional[str] = None


class QueueItem(BaseModel):
    """A finished session waiting for analysis."""

    session_id: str
    project: str = ""
    transcript_path: Optional[str] = None
    added_at: str

    @field_validator("added_at", mode="before")
    @classmethod
    def timestamp_as_string(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.isoformat()
        return v


class AnalysisQueue(BaseModel):
    """Sessions queued by the SessionEnd hook, oldest first."""

    items: List[QueueItem] = Field(default_factory=list)

    def to_record(self) -> Dict[str, Any]:
        return {"items": [item.model_dump(mode="json", exclude_none=True) for item in self.items]}


@dataclass(frozen=True)
class ClaudeMdContent:
    """
    A markdown document split around the machine-managed patterns section.

    ``patterns_section`` includes both sentinel markers verbatim, or is None
    when the document has no (well-ordered) marker pair.
    """

    before_patterns: str
    patterns_section: Optional[str]
    after_patterns: str
