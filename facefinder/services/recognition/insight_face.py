"""
InsightFace-based implementation of the face detector.

Example:
    ```python
    detector = InsightFaceDetector()

    with open("image.jpg", "rb") as f:
        detections = await detector.detect_faces(f.read(), max_faces=5)
    ```

Note:
    Requires the ``insightface`` extra. The buffalo_l model produces 512-d
    embeddings, so deployments using it must set EMBEDDING_DIMENSION=512.
    This implementation uses CPU inference; add 'CUDAExecutionProvider' to
    the providers list for GPU support.
"""
import asyncio
from typing import Any, List, Optional

import numpy as np
from insightface.app import FaceAnalysis
from insightface.app.common import Face as InsightFace

from facefinder.core.config import settings
from facefinder.core.exceptions import DetectorError, ModelLoadError
from facefinder.core.logging import get_logger
from facefinder.core.utils.image import bytes_to_numpy_array, downscale_to_max_pixels
from facefinder.domain.entities.face import BoundingBox, Detection
from facefinder.domain.interfaces.recognition import FaceDetector

logger = get_logger(__name__)


class InsightFaceDetector(FaceDetector):
    """
    InsightFace-based face detector.

    Attributes:
        model: InsightFace model instance for face analysis
    """

    def __init__(self) -> None:
        """Load the InsightFace model.

        Raises:
            ModelLoadError: If the model cannot be loaded
        """
        try:
            self.model = FaceAnalysis(
                name=settings.MODEL_NAME,
                root=settings.MODEL_CACHE_DIR,
                providers=['CPUExecutionProvider']
            )
            # Detection size affects accuracy significantly
            self.model.prepare(ctx_id=0, det_size=(640, 640))
        except Exception as e:
            logger.error("Failed to load InsightFace model", error=str(e), exc_info=True)
            raise ModelLoadError(f"Failed to load InsightFace model: {str(e)}")

        logger.info("InsightFace detector initialized", model=settings.MODEL_NAME)

    def _prepare_image(self, img: np.ndarray) -> np.ndarray:
        """Shrink the image if it exceeds MAX_IMAGE_PIXELS."""
        height, width = img.shape[:2]
        resized = downscale_to_max_pixels(img, settings.MAX_IMAGE_PIXELS)
        if resized is not img:
            logger.info(
                "Resizing large image",
                original_size=(width, height),
                new_size=(resized.shape[1], resized.shape[0])
            )
        return resized

    def _convert_to_detection(self, face_data: InsightFace, scale: float) -> Detection:
        """
        Convert an InsightFace result to a Detection.

        Bounding boxes are mapped back to the pixel space of the original
        image and clipped at zero.

        Args:
            face_data: Face detection result from InsightFace
            scale: Original width divided by processed width

        Returns:
            Detection with pixel bounding box and 0-1 confidence
        """
        left, top, right, bottom = (float(v) * scale for v in face_data.bbox)
        left, top = max(0.0, left), max(0.0, top)
        bounding_box = BoundingBox(
            x=left,
            y=top,
            width=max(0.0, right - left),
            height=max(0.0, bottom - top),
        )

        embedding: Any = face_data.normed_embedding
        if embedding is None:
            embedding = face_data.embedding

        return Detection(
            embedding=embedding,
            bounding_box=bounding_box,
            confidence=min(1.0, max(0.0, float(face_data.det_score))),
        )

    async def detect_faces(
        self,
        image_bytes: bytes,
        max_faces: Optional[int] = None,
    ) -> List[Detection]:
        # Decoding and inference run in a worker thread to keep the event loop free
        return await asyncio.to_thread(self._detect, image_bytes, max_faces)

    def _detect(self, image_bytes: bytes, max_faces: Optional[int]) -> List[Detection]:
        original = bytes_to_numpy_array(image_bytes)
        img = self._prepare_image(original)
        scale = original.shape[1] / img.shape[1]

        try:
            # Use InsightFace's native max_num parameter, 0 means no limit
            faces = self.model.get(img, max_num=0 if max_faces is None else max_faces)
        except Exception as e:
            logger.error(
                "Face processing failed",
                error=str(e),
                image_shape=img.shape,
                max_faces=max_faces,
                exc_info=True
            )
            raise DetectorError(f"Face detection failed: {str(e)}")

        logger.debug(
            "Face detection results",
            faces_found=len(faces) if faces else 0,
            max_faces=max_faces
        )

        faces = [face for face in faces or [] if face.embedding is not None]
        if max_faces is not None:
            faces = faces[:max_faces]

        return [self._convert_to_detection(face, scale) for face in faces]
