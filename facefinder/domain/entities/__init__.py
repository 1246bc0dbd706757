"""Domain entities package."""
from .face import BoundingBox, Detection

__all__ = ["BoundingBox", "Detection"]
