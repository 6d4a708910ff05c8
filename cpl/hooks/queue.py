"""
Queue of finished sessions waiting for analysis.

The SessionEnd hook appends to ``~/.claude-patterns/queue.yaml``; `cpl analyze`
drains it. A session id is queued at most once.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

import yaml
from pydantic import ValidationError

from cpl.models import AnalysisQueue, QueueItem
from cpl.utils.errors import QueueLoadError
from cpl.utils.fs import read_yaml, write_yaml
from cpl.utils.logging import get_logger

logger = get_logger(__name__)


class AnalysisQueueStore:
    """YAML-file backed analysis queue."""

    def __init__(self, queue_path: Union[str, Path]):
        self.queue_path = Path(queue_path)

    async def load(self) -> AnalysisQueue:
        """Load the queue; a missing or blank file is an empty queue."""
        try:
            data = await read_yaml(self.queue_path)
        except (yaml.YAMLError, ValueError) as e:
            raise QueueLoadError(str(self.queue_path), str(e)) from e

        if data is None:
            return AnalysisQueue()
        if not isinstance(data, dict):
            raise QueueLoadError(str(self.queue_path), "top level must be a mapping")

        try:
            return AnalysisQueue(items=data.get("items") or [])
        except ValidationError as e:
            raise QueueLoadError(str(self.queue_path), str(e)) from e

    async def save(self, queue: AnalysisQueue) -> None:
        await write_yaml(self.queue_path, queue.to_record())

    async def list(self) -> List[QueueItem]:
        queue = await self.load()
        return queue.items

    async def add(self,
                  session_id: str,
                  project: str = "",
                  transcript_path: Optional[str] = None) -> bool:
        """
        Queue a session unless it is already queued.

        Returns:
            True if the session was added
        """
        queue = await self.load()
        if any(item.session_id == session_id for item in queue.items):
            logger.debug(f"Session {session_id} already queued")
            return False

        queue.items.append(
            QueueItem(
                session_id=session_id,
                project=project,
                transcript_path=transcript_path,
                added_at=datetime.now(timezone.utc).isoformat(),
            )
        )
        await self.save(queue)

        logger.info(f"Queued session {session_id} for analysis")
        return True

    async def remove(self, session_ids: Iterable[str]) -> int:
        """Drop the given sessions from the queue, returning how many were removed."""
        targets = set(session_ids)
        queue = await self.load()

        kept = [item for item in queue.items if item.session_id not in targets]
        removed = len(queue.items) - len(kept)
        if removed:
            queue.items = kept
            await self.save(queue)
        return removed
