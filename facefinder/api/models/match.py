"""API specific match models."""
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field

from facefinder.domain.similarity import confidence_percent
from facefinder.domain.value_objects.recognition import MatchRecord, QueryFace, SearchResult


class PhotoMatchResponse(BaseModel):
    """API model representing a single matched photo in a search response."""
    match_id: UUID = Field(..., description="Ledger record of the match")
    photo_id: UUID = Field(..., description="Matched photo")
    face_id: UUID = Field(..., description="Face in the photo that matched the selfie")
    similarity: float = Field(..., description="Similarity score (0.0 to 1.0)", ge=0.0, le=1.0)
    confidence: int = Field(..., description="Similarity as a percentage (0-100)", ge=0, le=100)


class MatchSearchResponse(BaseModel):
    """Response model for a selfie search."""
    event_id: UUID
    requester_id: str
    query_face: QueryFace = Field(..., description="Selfie face used for the search")
    candidates_compared: int = Field(..., description="Stored faces compared with the selfie")
    matches: List[PhotoMatchResponse] = Field(..., description="Matched photos, best first")

    @classmethod
    def from_service_response(cls, result: SearchResult) -> "MatchSearchResponse":
        """Convert the service layer SearchResult to the API response model."""
        matches = [
            PhotoMatchResponse(
                match_id=match_id,
                photo_id=match.photo_id,
                face_id=match.face_id,
                similarity=match.similarity,
                confidence=confidence_percent(match.similarity),
            )
            for match, match_id in zip(result.face_matches, result.match_ids)
        ]
        return cls(
            event_id=result.event_id,
            requester_id=result.requester_id,
            query_face=result.query_face,
            candidates_compared=result.candidates_compared,
            matches=matches,
        )


class MatchHistoryResponse(BaseModel):
    """Response model for the match history of a requester."""
    requester_id: str
    matches: List[MatchRecord]


class StatsResponse(BaseModel):
    """Response model for service totals."""
    events: int
    photos: int
    faces: int
    matches: int
