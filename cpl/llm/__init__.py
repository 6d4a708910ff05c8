"""Completion capability and provider clients."""

from .client import CompletionClient, create_completion_client

__all__ = ["CompletionClient", "create_completion_client"]
