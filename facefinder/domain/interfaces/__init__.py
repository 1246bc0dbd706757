"""Service interfaces package."""
from .recognition import FaceDetector
from .storage import EmbeddingStore, MatchLedger

__all__ = ["EmbeddingStore", "FaceDetector", "MatchLedger"]
