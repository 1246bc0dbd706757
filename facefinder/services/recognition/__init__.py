"""Face detector implementations."""
from typing import Optional

from facefinder.core.config import settings
from facefinder.domain.interfaces.recognition import FaceDetector

from .hash_seeded import HashSeededFaceDetector


def build_face_detector(backend: Optional[str] = None) -> FaceDetector:
    """Instantiate the detector selected by DETECTOR_BACKEND.

    The InsightFace backend is imported only when selected, since it needs
    the optional ``insightface`` extra.

    Raises:
        ValueError: If the backend name is unknown
    """
    name = (backend or settings.DETECTOR_BACKEND).lower()
    if name == "mock":
        return HashSeededFaceDetector()
    if name == "insightface":
        from .insight_face import InsightFaceDetector

        return InsightFaceDetector()
    raise ValueError(f"Unknown detector backend: {name}")


__all__ = ["HashSeededFaceDetector", "build_face_detector"]
