"""
Pattern catalog storage.

The catalog is a single YAML file holding {patterns: [...]}. It is loaded
and saved as a whole around every mutation; there is no locking, so two
processes writing at once leave the last writer's version on disk.
"""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import ValidationError

from cpl.models import Pattern, PatternCatalog, PatternInput
from cpl.utils.errors import AmbiguousIdentifierError, CatalogLoadError
from cpl.utils.fs import read_yaml, write_yaml
from cpl.utils.logging import get_logger

logger = get_logger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def resolve_in(patterns: List[Pattern], identifier: str) -> Optional[Pattern]:
    """
    Resolve an identifier against a list of patterns.

    Precedence: exact id, then unique id prefix, then exact name. The first
    tier with any candidate decides; several prefix matches raise
    AmbiguousIdentifierError.

    Args:
        patterns: Catalog contents
        identifier: Full id, id prefix or name

    Returns:
        The matching pattern, or None
    """
    # "" would prefix-match every id
    if not identifier:
        return None

    for pattern in patterns:
        if pattern.id == identifier:
            return pattern

    prefixed = [p for p in patterns if p.id.startswith(identifier)]
    if len(prefixed) == 1:
        return prefixed[0]
    if len(prefixed) > 1:
        raise AmbiguousIdentifierError(identifier, prefixed)

    return find_by_name(patterns, identifier)


def find_by_name(patterns: List[Pattern], name: str) -> Optional[Pattern]:
    """Exact name match; among duplicate names the oldest pattern wins."""
    named = [p for p in patterns if p.name == name]
    if not named:
        return None
    return min(named, key=lambda p: (p.created_at, p.id))


class CatalogStore:
    """
    File-backed pattern catalog.

    Every method re-reads the file so callers always see what is on disk.
    """

    def __init__(self, catalog_path: Union[str, Path]):
        self.catalog_path = Path(catalog_path)

    async def load(self) -> PatternCatalog:
        """Load the catalog; a missing or blank file is an empty catalog."""
        try:
            data = await read_yaml(self.catalog_path)
        except (yaml.YAMLError, ValueError) as e:
            raise CatalogLoadError(str(self.catalog_path), str(e)) from e

        if data is None:
            return PatternCatalog()
        if not isinstance(data, dict):
            raise CatalogLoadError(str(self.catalog_path), "top level must be a mapping")

        try:
            return PatternCatalog(patterns=data.get("patterns") or [])
        except ValidationError as e:
            raise CatalogLoadError(str(self.catalog_path), str(e)) from e

    async def save(self, catalog: PatternCatalog) -> None:
        await write_yaml(self.catalog_path, catalog.to_record())
        logger.debug(f"Saved {len(catalog.patterns)} patterns to {self.catalog_path}")

    async def list(self) -> List[Pattern]:
        catalog = await self.load()
        return catalog.patterns

    async def create(self,
                     pattern_input: PatternInput,
                     source_session: Optional[str] = None) -> Pattern:
        """
        Append a new pattern and persist the catalog.

        Names are not checked for uniqueness.

        Args:
            pattern_input: Validated pattern fields
            source_session: Id of the session the pattern was extracted from

        Returns:
            The stored pattern with its new id and timestamps
        """
        catalog = await self.load()
        now = _now()
        pattern = Pattern(
            **pattern_input.model_dump(include=set(PatternInput.model_fields)),
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            source_sessions=[source_session] if source_session else None,
        )
        catalog.patterns.append(pattern)
        await self.save(catalog)

        logger.info(f"Added pattern '{pattern.name}' ({pattern.short_id})")
        return pattern

    async def resolve(self, identifier: str) -> Optional[Pattern]:
        """Find a pattern by id, id prefix or name (see resolve_in)."""
        catalog = await self.load()
        return resolve_in(catalog.patterns, identifier)

    async def resolve_by_name_only(self, name: str) -> Optional[Pattern]:
        catalog = await self.load()
        return find_by_name(catalog.patterns, name)

    async def remove(self, identifier: str) -> bool:
        """
        Remove the pattern an identifier resolves to.

        Returns:
            True if a pattern was removed, False if nothing matched
        """
        catalog = await self.load()
        target = resolve_in(catalog.patterns, identifier)
        return await self._remove(catalog, target)

    async def remove_by_name_only(self, name: str) -> bool:
        catalog = await self.load()
        target = find_by_name(catalog.patterns, name)
        return await self._remove(catalog, target)

    async def _remove(self, catalog: PatternCatalog, target: Optional[Pattern]) -> bool:
        if target is None:
            return False

        catalog.patterns = [p for p in catalog.patterns if p.id != target.id]
        await self.save(catalog)

        logger.info(f"Removed pattern '{target.name}' ({target.short_id})")
        return True
