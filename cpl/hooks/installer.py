"""
Registration of the SessionEnd hook in Claude Code's settings.json.

Claude Code runs ``cpl hook session-end`` when a session ends, which queues
the session for the next `cpl analyze`. Other hooks in the file are left alone.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from cpl.utils.errors import ClaudeSettingsError
from cpl.utils.fs import read_text_file, write_text_file
from cpl.utils.logging import get_logger

logger = get_logger(__name__)

SESSION_END_EVENT = "SessionEnd"
SESSION_END_HOOK_COMMAND = "cpl hook session-end"


def get_claude_settings_path() -> Path:
    return Path.home() / ".claude" / "settings.json"


async def _read_settings(path: Path) -> Dict[str, Any]:
    try:
        content = await read_text_file(path)
    except FileNotFoundError:
        return {}

    if not content.strip():
        return {}

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ClaudeSettingsError(str(path), f"invalid JSON ({e})") from e

    if not isinstance(data, dict):
        raise ClaudeSettingsError(str(path), "top level must be an object")
    return data


async def _write_settings(path: Path, data: Dict[str, Any]) -> None:
    await write_text_file(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def _session_end_groups(data: Dict[str, Any], path: Path) -> List[Any]:
    hooks = data.get("hooks", {})
    if not isinstance(hooks, dict):
        raise ClaudeSettingsError(str(path), "'hooks' must be an object")

    groups = hooks.get(SESSION_END_EVENT, [])
    if not isinstance(groups, list):
        raise ClaudeSettingsError(str(path), f"'hooks.{SESSION_END_EVENT}' must be a list")
    return groups


def _is_cpl_hook(hook: Any) -> bool:
    return isinstance(hook, dict) and hook.get("command") == SESSION_END_HOOK_COMMAND


def _group_hooks(group: Any) -> List[Any]:
    if isinstance(group, dict) and isinstance(group.get("hooks"), list):
        return group["hooks"]
    return []


async def is_hook_installed(settings_path: Optional[Path] = None) -> bool:
    path = settings_path or get_claude_settings_path()
    data = await _read_settings(path)
    groups = _session_end_groups(data, path)
    return any(_is_cpl_hook(hook) for group in groups for hook in _group_hooks(group))


async def install_hook(settings_path: Optional[Path] = None) -> bool:
    """
    Add the SessionEnd hook.

    Returns:
        False if it was already installed
    """
    path = settings_path or get_claude_settings_path()
    data = await _read_settings(path)
    groups = _session_end_groups(data, path)

    if any(_is_cpl_hook(hook) for group in groups for hook in _group_hooks(group)):
        return False

    groups.append({"hooks": [{"type": "command", "command": SESSION_END_HOOK_COMMAND}]})
    data.setdefault("hooks", {})[SESSION_END_EVENT] = groups
    await _write_settings(path, data)

    logger.info(f"Installed {SESSION_END_EVENT} hook in {path}")
    return True


async def uninstall_hook(settings_path: Optional[Path] = None) -> bool:
    """
    Remove the SessionEnd hook, dropping any group or key it leaves empty.

    Returns:
        False if it was not installed
    """
    path = settings_path or get_claude_settings_path()
    data = await _read_settings(path)
    groups = _session_end_groups(data, path)

    removed = False
    kept_groups = []
    for group in groups:
        hooks = _group_hooks(group)
        remaining = [hook for hook in hooks if not _is_cpl_hook(hook)]
        if len(remaining) == len(hooks):
            kept_groups.append(group)
            continue

        removed = True
        if remaining:
            kept_groups.append({**group, "hooks": remaining})

    if not removed:
        return False

    hooks_section = data["hooks"]
    if kept_groups:
        hooks_section[SESSION_END_EVENT] = kept_groups
    else:
        del hooks_section[SESSION_END_EVENT]
    if not hooks_section:
        del data["hooks"]

    await _write_settings(path, data)
    logger.info(f"Removed {SESSION_END_EVENT} hook from {path}")
    return True
