"""Core face domain entities."""
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from facefinder.domain.embedding import ensure_well_formed


class BoundingBox(BaseModel):
    """Face bounding box in pixel units."""
    x: float = Field(..., ge=0, description="Left coordinate of the bounding box")
    y: float = Field(..., ge=0, description="Top coordinate of the bounding box")
    width: float = Field(..., ge=0, description="Width of the bounding box")
    height: float = Field(..., ge=0, description="Height of the bounding box")

    model_config = ConfigDict(frozen=True)


class Detection(BaseModel):
    """A single face found by a detector.

    The embedding is checked for well-formedness on construction, so a
    malformed vector never makes it past the detector boundary.
    """
    embedding: np.ndarray = Field(..., description="Face embedding vector")
    bounding_box: BoundingBox = Field(..., description="Face location in the image")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Detector confidence (0-1)")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("embedding", mode="before")
    @classmethod
    def validate_embedding(cls, v: Any) -> np.ndarray:
        """Convert the embedding to a float array, rejecting malformed vectors."""
        return ensure_well_formed(v)

    @property
    def dimension(self) -> int:
        return len(self.embedding)
