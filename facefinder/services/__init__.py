"""Application services."""
from .face_indexing import FaceIndexingService
from .face_matching import FaceMatchingService
from .file_service import PhotoStorage

__all__ = ["FaceIndexingService", "FaceMatchingService", "PhotoStorage"]
