"""Claude Code hook integration: the SessionEnd analysis queue."""

from .installer import install_hook, is_hook_installed, uninstall_hook
from .queue import AnalysisQueueStore

__all__ = [
    "AnalysisQueueStore",
    "install_hook",
    "is_hook_installed",
    "uninstall_hook",
]
