"""Service for handling uploaded photo files on local disk."""
import asyncio
import os
import uuid
from pathlib import Path
from typing import Optional
from uuid import UUID

from facefinder.core.config import settings
from facefinder.core.exceptions import ImageTooLargeError, InvalidImageError, StorageError
from facefinder.core.logging import get_logger

logger = get_logger(__name__)


class PhotoStorage:
    """Stores uploaded photos below the upload directory, one folder per event."""

    def __init__(self, root: Optional[str] = None, max_bytes: Optional[int] = None):
        """Initialize the photo storage.

        Args:
            root: Upload directory, defaults to settings.UPLOAD_DIR
            max_bytes: Maximum size of one image, defaults to settings.MAX_UPLOAD_BYTES
        """
        self.root = Path(root or settings.UPLOAD_DIR)
        self.max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES

    def validate(self, content: bytes, content_type: Optional[str] = None) -> None:
        """Check an upload before it is stored.

        Raises:
            InvalidImageError: If the upload is empty or not an image
            ImageTooLargeError: If the upload exceeds the size limit
        """
        if content_type is not None and not content_type.startswith("image/"):
            raise InvalidImageError(f"Unsupported content type: {content_type}")
        if not content:
            raise InvalidImageError("Empty upload")
        if len(content) > self.max_bytes:
            raise ImageTooLargeError(
                f"Image exceeds the maximum size of {self.max_bytes} bytes",
                details={"size": len(content), "max_bytes": self.max_bytes},
            )

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    async def save(self, event_id: UUID, filename: str, content: bytes) -> str:
        """Write an upload to disk.

        Args:
            event_id: Event the photo belongs to
            filename: Original client filename, only its extension is kept
            content: Image bytes

        Returns:
            Storage path of the written file

        Raises:
            StorageError: If the file cannot be written
        """
        extension = os.path.splitext(filename or "")[1].lower()
        path = self.root / str(event_id) / f"{uuid.uuid4()}{extension}"
        try:
            await asyncio.to_thread(self._write, path, content)
        except OSError as e:
            logger.error(
                "Failed to store photo",
                path=str(path),
                error=str(e),
                exc_info=True
            )
            raise StorageError(f"Failed to store photo: {str(e)}") from e

        logger.debug("Stored photo", path=str(path), size=len(content))
        return str(path)

    async def read(self, storage_path: str) -> bytes:
        """Read a stored photo.

        Raises:
            FileNotFoundError: If the file no longer exists
        """
        return await asyncio.to_thread(Path(storage_path).read_bytes)

    async def delete(self, storage_path: str) -> None:
        """Remove a stored photo; a missing file is ignored."""
        try:
            await asyncio.to_thread(Path(storage_path).unlink, True)
        except OSError as e:
            logger.warning("Failed to remove photo file", path=storage_path, error=str(e))
