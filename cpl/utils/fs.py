"""
File helpers shared by the catalog store and the document sync.

The coroutines keep call sites uniformly awaitable; operations are always
awaited one at a time, so plain blocking file I/O is used underneath.
"""

from pathlib import Path
from typing import Any, Optional, Union

import yaml
from yaml.constructor import SafeConstructor

PathLike = Union[str, Path]


class TolerantLoader(yaml.SafeLoader):
    """SafeLoader that loads an out-of-range timestamp (2024-13-45) as null instead of raising."""


def _construct_timestamp(loader: TolerantLoader, node: yaml.Node) -> Any:
    try:
        return SafeConstructor.construct_yaml_timestamp(loader, node)
    except ValueError:
        return None


TolerantLoader.add_constructor("tag:yaml.org,2002:timestamp", _construct_timestamp)


def load_yaml(text: str) -> Any:
    """Parse YAML text with TolerantLoader. Syntax errors still raise yaml.YAMLError."""
    return yaml.load(text, Loader=TolerantLoader)


async def file_exists(path: PathLike) -> bool:
    return Path(path).exists()


async def read_text_file(path: PathLike) -> str:
    """Read a UTF-8 file as-is (line endings untouched). Missing files raise FileNotFoundError."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


async def write_text_file(path: PathLike, content: str) -> None:
    """Write a UTF-8 file, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


async def read_yaml(path: PathLike) -> Optional[Any]:
    """
    Load a YAML file.

    Returns:
        Parsed data, or None when the file is missing or blank
    """
    try:
        content = await read_text_file(path)
    except FileNotFoundError:
        return None

    if not content.strip():
        return None
    return load_yaml(content)


async def write_yaml(path: PathLike, data: Any) -> None:
    content = yaml.safe_dump(
        data,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
    await write_text_file(path, content)
