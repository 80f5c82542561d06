"""Accept candidate photo files into the queue."""
import logging
import mimetypes
import os
import shutil
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from PIL import Image, UnidentifiedImageError

from boatvision.models import SUPPORTED_MIME_TYPES, ProcessingStatus
from boatvision.queue_store import PreviewHandle, QueueItem, QueueStore

logger = logging.getLogger(__name__)

PREVIEW_SIZE = (512, 512)

mimetypes.add_type("image/heic", ".heic")
mimetypes.add_type("image/heif", ".heif")
mimetypes.add_type("image/webp", ".webp")


@dataclass
class Candidate:
    """A file offered for intake. mime_type is guessed from the name when omitted."""

    path: Path
    mime_type: Optional[str] = None

    @property
    def declared_type(self) -> Optional[str]:
        if self.mime_type:
            return self.mime_type.lower()
        guessed, _ = mimetypes.guess_type(self.path.name)
        return guessed


def create_preview(source: Path) -> PreviewHandle:
    """
    Write a temporary preview for source and return its handle.

    A JPEG thumbnail when Pillow can decode the photo, otherwise a copy of the
    original bytes (HEIC without a decoder plugin, for example).
    """
    fd, name = tempfile.mkstemp(prefix="boatvision-preview-", suffix=source.suffix or ".img")
    os.close(fd)
    path = Path(name)
    try:
        with Image.open(source) as img:
            img.thumbnail(PREVIEW_SIZE)
            img.convert("RGB").save(path, format="JPEG")
    except (UnidentifiedImageError, OSError):
        try:
            shutil.copyfile(source, path)
        except OSError:
            path.unlink(missing_ok=True)
            raise
    return PreviewHandle(path)


def intake_files(store: QueueStore, candidates: Iterable[Union[Candidate, Path, str]]) -> List[QueueItem]:
    """
    Queue every supported candidate as a ready item and return the new items.

    Unsupported types and unreadable files are dropped without error.
    """
    created = []
    try:
        for candidate in candidates:
            if not isinstance(candidate, Candidate):
                candidate = Candidate(Path(candidate))

            mime_type = candidate.declared_type
            if mime_type not in SUPPORTED_MIME_TYPES:
                logger.debug(f"Skipping {candidate.path.name}: unsupported type {mime_type}")
                continue

            try:
                preview = create_preview(candidate.path)
            except OSError as e:
                logger.warning(f"Skipping {candidate.path}: cannot read file: {e}")
                continue

            created.append(QueueItem(
                id=uuid.uuid4().hex,
                source=candidate.path,
                mime_type=mime_type,
                preview=preview,
                status=ProcessingStatus.READY,
                logs=["Queued for processing"],
            ))
    except BaseException:
        # Nothing reaches the store, so release what this batch allocated
        for item in created:
            item.preview.revoke()
        raise

    store.add(created)
    return created
