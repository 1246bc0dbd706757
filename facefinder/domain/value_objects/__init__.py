"""Value objects package."""
from .recognition import (
    Candidate,
    CandidateSet,
    IndexingResult,
    MatchCandidate,
    MatchRecord,
    QueryFace,
    SearchResult,
)

__all__ = [
    "Candidate",
    "CandidateSet",
    "IndexingResult",
    "MatchCandidate",
    "MatchRecord",
    "QueryFace",
    "SearchResult",
]
