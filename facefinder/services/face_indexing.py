"""Face indexing service for detecting and storing the faces of event photos."""
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from facefinder.core.config import settings
from facefinder.core.exceptions import (
    DimensionMismatchError,
    InvalidImageError,
    MalformedEmbeddingError,
    PhotoNotFoundError,
)
from facefinder.core.logging import get_logger
from facefinder.domain.embedding import ensure_dimension
from facefinder.domain.interfaces.recognition import FaceDetector
from facefinder.domain.value_objects.recognition import IndexingResult
from facefinder.infrastructure.database.unit_of_work import unit_of_work

logger = get_logger(__name__)


class FaceIndexingService:
    """Service for indexing the faces of uploaded photos.

    Detections of a photo are recorded and the photo is marked processed in a
    single transaction, so a photo only becomes searchable once all of its
    faces are stored.

    Example:
        ```python
        service = FaceIndexingService(detector, session_factory)

        result = await service.index_photo(photo.id, image_bytes)
        ```
    """

    def __init__(
        self,
        detector: FaceDetector,
        session_factory: async_sessionmaker[AsyncSession],
        dimension: Optional[int] = None,
        max_faces: Optional[int] = None,
        min_confidence: Optional[float] = None,
    ) -> None:
        """Initialize the face indexing service.

        Args:
            detector: Face detector used on uploaded photos
            session_factory: Factory for database sessions
            dimension: Required embedding length, defaults to settings.EMBEDDING_DIMENSION
            max_faces: Maximum faces indexed per photo, defaults to settings.MAX_FACES_PER_IMAGE
            min_confidence: Minimum detector confidence, defaults to settings.MIN_FACE_CONFIDENCE
        """
        self._detector = detector
        self._session_factory = session_factory
        self._dimension = dimension or settings.EMBEDDING_DIMENSION
        self._max_faces = max_faces or settings.MAX_FACES_PER_IMAGE
        self._min_confidence = (
            settings.MIN_FACE_CONFIDENCE if min_confidence is None else min_confidence
        )

    async def index_photo(self, photo_id: UUID, image_bytes: bytes) -> IndexingResult:
        """Detect the faces of a photo, store them and mark the photo processed.

        A photo without faces is still marked processed; it simply contributes
        no candidates.

        Args:
            photo_id: Photo being indexed
            image_bytes: Raw image data

        Returns:
            IndexingResult with the ids of the stored faces

        Raises:
            InvalidImageError: If the image cannot be decoded
            MalformedEmbeddingError: If the detector returned a malformed embedding
            DimensionMismatchError: If an embedding does not have the configured length
            PhotoNotFoundError: If the photo was deleted in the meantime
            DetectorError: If the detector backend fails
        """
        try:
            detections = await self._detector.detect_faces(image_bytes, max_faces=self._max_faces)
            accepted = [d for d in detections if d.confidence >= self._min_confidence]
            for detection in accepted:
                ensure_dimension(detection.embedding, self._dimension)

            async with unit_of_work(self._session_factory) as uow:
                await uow.photos.get(photo_id)
                face_ids = []
                for detection in accepted:
                    face_id = await uow.faces.record_detection(
                        photo_id=photo_id,
                        embedding=detection.embedding,
                        bounding_box=detection.bounding_box,
                        confidence=detection.confidence,
                    )
                    face_ids.append(face_id)
                await uow.photos.mark_processed(photo_id)

        except InvalidImageError as e:
            logger.error("Invalid image format", error=str(e), photo_id=str(photo_id))
            raise
        except (MalformedEmbeddingError, DimensionMismatchError) as e:
            logger.error(
                "Detector returned unusable embedding",
                error=str(e),
                photo_id=str(photo_id)
            )
            raise
        except PhotoNotFoundError:
            logger.warning("Photo removed before indexing finished", photo_id=str(photo_id))
            raise

        logger.info(
            "Successfully indexed faces",
            photo_id=str(photo_id),
            faces_detected=len(detections),
            faces_count=len(face_ids)
        )
        return IndexingResult(
            photo_id=photo_id,
            face_ids=face_ids,
            faces_detected=len(detections),
        )

    async def register_attempt(self, photo_id: UUID) -> int:
        """Count an ingestion attempt and return the new total."""
        async with unit_of_work(self._session_factory) as uow:
            return await uow.photos.record_attempt(photo_id)

    async def mark_failed(self, photo_id: UUID, error: str) -> None:
        """Record that a photo could not be indexed."""
        async with unit_of_work(self._session_factory) as uow:
            await uow.photos.mark_failed(photo_id, error)

    async def pending_photos(self) -> List[Tuple[UUID, str]]:
        """Photos still waiting for indexing, as (photo_id, storage_path) pairs."""
        async with unit_of_work(self._session_factory) as uow:
            photos = await uow.photos.list_pending()
            return [(photo.id, photo.storage_path) for photo in photos]
