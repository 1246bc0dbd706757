"""Custom exceptions for the face finder service."""
from typing import Optional


class FaceFinderError(Exception):
    """Base exception for face finder operations."""

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize face finder error.

        Args:
            message: Error description
            details: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidImageError(FaceFinderError):
    """Raised when the provided image is invalid or cannot be processed."""
    pass


class ImageTooLargeError(FaceFinderError):
    """Raised when an uploaded image exceeds the maximum allowed size."""
    pass


class NoFaceDetectedError(FaceFinderError):
    """Raised when no face is detected in a submitted selfie."""
    pass


class DetectorError(FaceFinderError):
    """Raised when the face detector backend fails."""
    pass


class ModelLoadError(DetectorError):
    """Raised when the face recognition model fails to load."""
    pass


class MalformedEmbeddingError(FaceFinderError):
    """Raised when an embedding is empty or contains non-finite values."""
    pass


class DimensionMismatchError(FaceFinderError):
    """Raised when two embeddings that must be compared differ in length."""

    def __init__(self, expected: int, actual: int, details: Optional[dict] = None):
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}",
            details,
        )
        self.expected = expected
        self.actual = actual


class SearchTimeoutError(FaceFinderError):
    """Raised when a selfie search does not finish within its time budget."""
    pass


class StorageError(FaceFinderError):
    """Raised when a persistence operation fails."""
    pass


class EventNotFoundError(StorageError):
    """Raised when attempting to access a non-existent event."""
    pass


class DuplicateEventCodeError(StorageError):
    """Raised when an event code is already taken."""
    pass


class PhotoNotFoundError(StorageError):
    """Raised when attempting to access a non-existent photo."""
    pass


class MatchNotFoundError(StorageError):
    """Raised when attempting to access a non-existent match record."""
    pass


class ServiceNotInitializedError(FaceFinderError):
    """Raised when a service is requested before the container is initialized."""
    pass
