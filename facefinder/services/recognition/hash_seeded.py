"""Deterministic development face detector.

Stands in for a real model in development and tests: the image is decoded (so
corrupt uploads are still rejected) and face embeddings are drawn from a random
generator seeded with a digest of the image bytes. The same bytes therefore
always yield the same detections, which lets a photo submitted as a selfie find
itself.
"""
import asyncio
import hashlib
from typing import List, Optional

import numpy as np

from facefinder.core.config import settings
from facefinder.core.logging import get_logger
from facefinder.core.utils.image import bytes_to_numpy_array
from facefinder.domain.entities.face import BoundingBox, Detection
from facefinder.domain.interfaces.recognition import FaceDetector

logger = get_logger(__name__)


class HashSeededFaceDetector(FaceDetector):
    """Face detector producing unit-length pseudo-embeddings per image."""

    def __init__(
        self,
        dimension: Optional[int] = None,
        faces_per_image: Optional[int] = None,
    ) -> None:
        """Initialize the detector.

        Args:
            dimension: Embedding length, defaults to settings.EMBEDDING_DIMENSION
            faces_per_image: Faces reported per image, defaults to settings.MOCK_FACES_PER_IMAGE
        """
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self.faces_per_image = (
            settings.MOCK_FACES_PER_IMAGE if faces_per_image is None else faces_per_image
        )

    @staticmethod
    def _seed(image_bytes: bytes) -> int:
        return int.from_bytes(hashlib.sha256(image_bytes).digest()[:8], "big")

    @staticmethod
    def _bounding_box(index: int, count: int, width: int, height: int) -> BoundingBox:
        # Faces are laid out side by side across the image
        cell = width / count
        return BoundingBox(
            x=index * cell + cell / 4,
            y=height / 4,
            width=cell / 2,
            height=height / 2,
        )

    async def detect_faces(
        self,
        image_bytes: bytes,
        max_faces: Optional[int] = None,
    ) -> List[Detection]:
        return await asyncio.to_thread(self._detect, image_bytes, max_faces)

    def _detect(self, image_bytes: bytes, max_faces: Optional[int]) -> List[Detection]:
        img = bytes_to_numpy_array(image_bytes)
        height, width = img.shape[:2]

        count = self.faces_per_image
        if max_faces is not None:
            count = min(count, max_faces)

        rng = np.random.default_rng(self._seed(image_bytes))
        detections = []
        for index in range(count):
            vector = rng.uniform(-1.0, 1.0, self.dimension)
            norm = np.linalg.norm(vector)
            if norm > 0:
                vector = vector / norm
            confidence = float(rng.uniform(0.8, 0.99))
            detections.append(Detection(
                embedding=vector,
                bounding_box=self._bounding_box(index, count, width, height),
                confidence=confidence,
            ))

        logger.debug(
            "Generated detections",
            faces_found=len(detections),
            image_size=(width, height),
            dimension=self.dimension
        )
        return detections
