"""In-memory queue of boat photos awaiting processing."""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from boatvision.models import ProcessedResult, ProcessingStatus

logger = logging.getLogger(__name__)


class PreviewHandle:
    """A temporary preview file owned by one queue item. Revoking deletes it."""

    def __init__(self, path: Path):
        self.path = path
        self.revoked = False

    def revoke(self) -> None:
        if self.revoked:
            return
        self.revoked = True
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete preview {self.path}: {e}")

    def __repr__(self):
        return f"PreviewHandle({str(self.path)!r}, revoked={self.revoked})"


@dataclass
class QueueItem:
    """Represents one photo in the processing queue."""

    id: str
    source: Path
    mime_type: str
    preview: PreviewHandle
    status: ProcessingStatus = ProcessingStatus.READY
    logs: List[str] = field(default_factory=list)
    result: Optional[ProcessedResult] = None
    error: Optional[str] = None

    @property
    def name(self) -> str:
        return self.source.name


class QueueStore:
    """
    Ordered collection of queue items, the single source of truth for rendering.

    Items are mutated only through update(); logs are always appended and a
    result may only accompany the complete status.
    """

    def __init__(self):
        self._items: List[QueueItem] = []

    def __iter__(self) -> Iterator[QueueItem]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.clear()

    def items(self) -> List[QueueItem]:
        """Snapshot of the current queue order."""
        return list(self._items)

    def get(self, item_id: str) -> Optional[QueueItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    @property
    def ready_for_processing(self) -> bool:
        return any(item.status.is_eligible for item in self._items)

    def add(self, items: Iterable[QueueItem]) -> None:
        items = list(items)
        self._items.extend(items)
        if items:
            logger.debug(f"Queued {len(items)} item(s); queue size {len(self._items)}")

    def remove(self, item_id: str) -> None:
        item = self.get(item_id)
        if item is None:
            return
        self._items.remove(item)
        item.preview.revoke()
        logger.debug(f"Removed {item.name} ({item_id})")

    def clear(self) -> None:
        for item in self._items:
            item.preview.revoke()
        self._items = []

    def update(
        self,
        item_id: str,
        status: Optional[ProcessingStatus] = None,
        logs: Optional[Iterable[str]] = None,
        result: Optional[ProcessedResult] = None,
        error: Optional[str] = None,
    ) -> None:
        """Merge partial fields into an item. Unknown ids are ignored."""
        item = self.get(item_id)
        if item is None:
            return

        new_status = status if status is not None else item.status
        new_result = result if result is not None else item.result
        if (new_status == ProcessingStatus.COMPLETE) != (new_result is not None):
            raise ValueError(
                f"Item {item_id}: a result must accompany status 'complete' and only that status"
            )

        item.status = new_status
        item.result = new_result
        if error is not None:
            item.error = error
        if logs:
            item.logs.extend(logs)

    def append_log(self, item_id: str, entry: str) -> None:
        self.update(item_id, logs=[entry])
