"""Face recognition value objects."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from facefinder.domain.embedding import ensure_well_formed
from facefinder.domain.entities.face import BoundingBox


class Candidate(BaseModel):
    """A stored face eligible for comparison against a query."""
    face_id: UUID = Field(..., description="Identifier of the stored face")
    photo_id: UUID = Field(..., description="Photo the face was detected in")
    embedding: np.ndarray = Field(..., description="Stored face embedding")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @field_validator("embedding", mode="before")
    @classmethod
    def validate_embedding(cls, v) -> np.ndarray:
        return ensure_well_formed(v)


class CandidateSet(BaseModel):
    """All faces of the processed photos of one event."""
    event_id: UUID = Field(..., description="Event the candidates belong to")
    candidates: List[Candidate] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.candidates)


class MatchCandidate(BaseModel):
    """Ranked match produced by the similarity engine. Never persisted."""
    photo_id: UUID = Field(..., description="Photo containing the matched face")
    face_id: UUID = Field(..., description="Stored face the query was compared with")
    similarity: float = Field(..., ge=0.0, le=1.0, description="Cosine similarity (0-1)")

    model_config = ConfigDict(frozen=True)


class MatchRecord(BaseModel):
    """Accepted match persisted in the ledger."""
    id: UUID
    requester_id: str
    photo_id: UUID
    event_id: UUID
    confidence: int = Field(..., ge=0, le=100, description="Match confidence (0-100)")
    selfie_ref: Optional[str] = None
    notification_sent: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QueryFace(BaseModel):
    """Summary of the selfie face used for a search."""
    bounding_box: BoundingBox
    confidence: float = Field(..., ge=0.0, le=1.0)


class SearchResult(BaseModel):
    """Result of a selfie search against one event."""
    event_id: UUID
    requester_id: str
    query_face: QueryFace
    candidates_compared: int = Field(..., ge=0)
    face_matches: List[MatchCandidate] = Field(default_factory=list)
    match_ids: List[UUID] = Field(default_factory=list, description="Ledger records written for the matches")


class IndexingResult(BaseModel):
    """Result of indexing the faces of one photo."""
    photo_id: UUID
    face_ids: List[UUID] = Field(default_factory=list)
    faces_detected: int = Field(0, ge=0, description="Faces returned by the detector")

    @property
    def faces_indexed(self) -> int:
        return len(self.face_ids)
