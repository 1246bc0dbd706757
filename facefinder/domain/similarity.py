"""Similarity engine for face embeddings.

Pure, synchronous functions: nothing in this module touches storage or keeps
state, so the same query, candidates and policy always produce the same
ranking.

Example:
    ```python
    policy = ScoringPolicy(threshold=0.6, limit=50)
    matches = rank(query_embedding, candidate_set.candidates, policy.threshold, policy.limit)
    ```
"""
import math
from typing import Iterable, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from facefinder.core.exceptions import DimensionMismatchError
from facefinder.domain.embedding import EmbeddingLike
from facefinder.domain.value_objects.recognition import Candidate, MatchCandidate

DEFAULT_THRESHOLD = 0.6
DEFAULT_LIMIT = 50


class ScoringPolicy(BaseModel):
    """Threshold and result cap applied to a single ranking call."""
    threshold: float = Field(
        DEFAULT_THRESHOLD, ge=0.0, le=1.0,
        description="Minimum cosine similarity a candidate must reach"
    )
    limit: int = Field(
        DEFAULT_LIMIT, ge=1,
        description="Maximum number of ranked matches returned"
    )

    model_config = ConfigDict(frozen=True)

    @classmethod
    def resolve(
        cls,
        threshold: Optional[float] = None,
        limit: Optional[int] = None,
        default: Optional["ScoringPolicy"] = None,
    ) -> "ScoringPolicy":
        """Build a policy from per-call overrides, falling back to a default policy."""
        base = default or cls()
        return cls(
            threshold=base.threshold if threshold is None else threshold,
            limit=base.limit if limit is None else limit,
        )


def _as_vector(vector: EmbeddingLike) -> np.ndarray:
    return np.asarray(vector, dtype=np.float64)


def _check_same_length(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(expected=a.shape[0], actual=b.shape[0])


def cosine_similarity(a: EmbeddingLike, b: EmbeddingLike) -> float:
    """Cosine of the angle between two embeddings.

    Returns 0.0 when either vector has zero norm. The result is clamped into
    [-1, 1] to absorb floating-point overshoot.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    va, vb = _as_vector(a), _as_vector(b)
    _check_same_length(va, vb)

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    score = float(np.dot(va, vb)) / (norm_a * norm_b)
    return max(-1.0, min(1.0, score))


def euclidean_distance(a: EmbeddingLike, b: EmbeddingLike) -> float:
    """Straight-line distance between two embeddings.

    Not used by the default ranking; kept for alternate threshold policies.

    Raises:
        DimensionMismatchError: If the vectors differ in length
    """
    va, vb = _as_vector(a), _as_vector(b)
    _check_same_length(va, vb)
    return math.sqrt(float(np.sum((va - vb) ** 2)))


def rank(
    query: EmbeddingLike,
    candidates: Sequence[Candidate],
    threshold: float = DEFAULT_THRESHOLD,
    limit: int = DEFAULT_LIMIT,
) -> List[MatchCandidate]:
    """Rank candidates by cosine similarity to the query.

    Candidates scoring below ``threshold`` are dropped, the rest are sorted by
    descending similarity (ties keep their input order) and cut to ``limit``.

    Args:
        query: Query embedding
        candidates: Stored faces to compare against, possibly empty
        threshold: Minimum similarity (0-1)
        limit: Maximum number of results (>= 1)

    Returns:
        Ranked list of MatchCandidate, at most ``limit`` long

    Raises:
        DimensionMismatchError: If any candidate differs in length from the
            query. Raised before any candidate is scored.
        ValueError: If threshold or limit are out of range
    """
    policy = ScoringPolicy(threshold=threshold, limit=limit)
    query_vector = _as_vector(query)

    for candidate in candidates:
        _check_same_length(query_vector, candidate.embedding)

    scored = []
    for candidate in candidates:
        similarity = cosine_similarity(query_vector, candidate.embedding)
        if similarity >= policy.threshold:
            scored.append((similarity, candidate))

    # sorted() is stable, so equal scores keep arrival order
    scored = sorted(scored, key=lambda item: item[0], reverse=True)

    return [
        MatchCandidate(
            photo_id=candidate.photo_id,
            face_id=candidate.face_id,
            similarity=similarity,
        )
        for similarity, candidate in scored[:policy.limit]
    ]


def best_per_photo(matches: Iterable[MatchCandidate]) -> List[MatchCandidate]:
    """Keep only the first (best ranked) match of every photo, preserving order."""
    seen = set()
    unique = []
    for match in matches:
        if match.photo_id in seen:
            continue
        seen.add(match.photo_id)
        unique.append(match)
    return unique


def confidence_percent(similarity: float) -> int:
    """Convert a similarity score to the integer percentage stored in the ledger."""
    # halves round up
    return max(0, min(100, int(math.floor(similarity * 100 + 0.5))))
