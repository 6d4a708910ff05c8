"""
Custom exceptions for the claude-patterns toolkit.

This module defines all custom exceptions used throughout the application.
Not-found is never an exception inside the catalog store (lookups return
None, removals return False); these types cover the genuine faults.
"""

from typing import Any, List, Optional


class CplException(Exception):
    """Base exception for all cpl-specific errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Catalog Exceptions
# =============================================================================


class CatalogError(CplException):
    """Base exception for pattern catalog operations."""

    pass


class CatalogLoadError(CatalogError):
    """Catalog file exists but could not be decoded."""

    def __init__(self, path: str, reason: str) -> None:
        """Initialize with the offending path."""
        message = f"Could not load pattern catalog '{path}': {reason}"
        super().__init__(message, {"path": path, "reason": reason})


class AmbiguousIdentifierError(CatalogError):
    """An id prefix matched more than one pattern."""

    def __init__(self, identifier: str, matches: List[Any]) -> None:
        """
        Initialize with the identifier and every colliding pattern.

        Args:
            identifier: The lookup string as given by the caller
            matches: Pattern records whose id starts with ``identifier``
        """
        message = f"Identifier '{identifier}' matches {len(matches)} patterns"
        super().__init__(
            message,
            {
                "identifier": identifier,
                "matches": [{"id": m.id, "name": m.name} for m in matches],
            },
        )
        self.identifier = identifier
        self.matches = list(matches)

    def __str__(self) -> str:
        return self.message


class PatternNotFoundError(CatalogError):
    """Pattern could not be resolved where a match is mandatory."""

    def __init__(self, identifier: str) -> None:
        """Initialize with the identifier."""
        message = f"Pattern '{identifier}' not found"
        super().__init__(message, {"identifier": identifier})
        self.identifier = identifier


class PatternValidationError(CatalogError):
    """Pattern input failed validation."""

    def __init__(self, errors: List[Any]) -> None:
        """Initialize with field-level errors."""
        fields = ", ".join(e.field for e in errors)
        message = f"Invalid pattern input ({fields})"
        super().__init__(
            message,
            {"errors": [{"field": e.field, "message": e.message} for e in errors]},
        )
        self.errors = list(errors)


# =============================================================================
# Session Exceptions
# =============================================================================


class AmbiguousSessionError(CplException):
    """A session id prefix matched more than one session."""

    def __init__(self, identifier: str, session_ids: List[str]) -> None:
        message = f"Session '{identifier}' matches {len(session_ids)} sessions"
        super().__init__(message, {"identifier": identifier, "session_ids": session_ids})
        self.identifier = identifier
        self.session_ids = list(session_ids)

    def __str__(self) -> str:
        return self.message


class QueueLoadError(CplException):
    """Analysis queue file exists but could not be decoded."""

    def __init__(self, path: str, reason: str) -> None:
        message = f"Could not load analysis queue '{path}': {reason}"
        super().__init__(message, {"path": path, "reason": reason})


# =============================================================================
# Sync Exceptions
# =============================================================================


class UnpairedMarkerError(CplException):
    """Document carries a patterns marker line without a well-ordered partner."""

    def __init__(self, path: str) -> None:
        """Initialize with the document path."""
        message = (
            f"'{path}' has an unpaired patterns marker; "
            "fix or remove it before syncing"
        )
        super().__init__(message, {"path": path})


# =============================================================================
# LLM Exceptions
# =============================================================================


class LLMError(CplException):
    """Base exception for completion provider errors."""

    pass


class CompletionError(LLMError):
    """Provider answered but the response carried no usable text."""

    pass


class UnsupportedProviderError(LLMError):
    """Unknown completion provider."""

    def __init__(self, provider: str, supported: list[str]) -> None:
        """Initialize with provider information."""
        message = f"Provider '{provider}' not supported. Supported providers: {', '.join(supported)}"
        super().__init__(message, {"provider": provider, "supported": supported})


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationError(CplException):
    """Configuration error."""

    pass


class MissingConfigurationError(ConfigurationError):
    """Required configuration missing."""

    def __init__(self, config_name: str) -> None:
        """Initialize with config name."""
        message = f"Required configuration '{config_name}' is missing"
        super().__init__(message, {"config_name": config_name})


class ClaudeSettingsError(ConfigurationError):
    """Claude Code settings.json cannot be read or has an unexpected shape."""

    def __init__(self, path: str, reason: str) -> None:
        """Initialize with the settings path."""
        message = f"Cannot update Claude Code settings '{path}': {reason}"
        super().__init__(message, {"path": path, "reason": reason})
