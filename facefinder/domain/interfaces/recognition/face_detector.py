"""Face detector interface."""
from abc import ABC, abstractmethod
from typing import List, Optional

from ...entities.face import Detection


class FaceDetector(ABC):
    """Interface for turning image bytes into face detections."""

    @abstractmethod
    async def detect_faces(
        self,
        image_bytes: bytes,
        max_faces: Optional[int] = None,
    ) -> List[Detection]:
        """
        Detect faces and extract their embeddings.

        Args:
            image_bytes: Raw image data
            max_faces: Maximum number of faces to return (None for no limit)

        Returns:
            List of Detection objects, each holding an embedding, a pixel
            bounding box and the detector confidence (0-1). Returns an empty
            list when the image contains no faces.

        Raises:
            InvalidImageError: If the image cannot be decoded
            DetectorError: If the detector backend fails
        """
        pass
