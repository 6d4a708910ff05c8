"""
claude-patterns

Extracts reusable patterns from Claude Code session transcripts, keeps them
in a YAML catalog, and syncs the catalog into CLAUDE.md documents.
"""

__version__ = "0.1.0"
