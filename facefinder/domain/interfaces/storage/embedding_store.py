"""Embedding store interface for face embeddings."""
from abc import ABC, abstractmethod
from uuid import UUID

from ...embedding import EmbeddingLike
from ...entities.face import BoundingBox
from ...value_objects.recognition import CandidateSet


class EmbeddingStore(ABC):
    """Interface for storing face embeddings and reading them back per event."""

    @abstractmethod
    async def fetch_candidate_set(self, event_id: UUID) -> CandidateSet:
        """
        Fetch every stored face of the processed photos of an event.

        Args:
            event_id: Event whose photos are searched

        Returns:
            CandidateSet for the event, in no particular order. Empty when the
            event has no processed photos with faces.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def record_detection(
        self,
        photo_id: UUID,
        embedding: EmbeddingLike,
        bounding_box: BoundingBox,
        confidence: float,
    ) -> UUID:
        """
        Store one detected face of a photo.

        Duplicate detections are accepted; each becomes an independent candidate.

        Args:
            photo_id: Photo the face was detected in
            embedding: Face embedding vector
            bounding_box: Face location in pixel units
            confidence: Detector confidence (0-1)

        Returns:
            Identifier of the stored face

        Raises:
            MalformedEmbeddingError: If the embedding is not well-formed
            StorageError: If the write fails
        """
        pass
