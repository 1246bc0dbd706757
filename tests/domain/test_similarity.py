"""Tests for the similarity engine."""
import math
import uuid

import numpy as np
import pytest

from facefinder.core.exceptions import DimensionMismatchError
from facefinder.domain.similarity import (
    ScoringPolicy,
    best_per_photo,
    confidence_percent,
    cosine_similarity,
    euclidean_distance,
    rank,
)
from facefinder.domain.value_objects.recognition import Candidate, MatchCandidate


def make_candidate(embedding, photo_id=None) -> Candidate:
    return Candidate(face_id=uuid.uuid4(), photo_id=photo_id or uuid.uuid4(), embedding=embedding)


def basis(index: int, dimension: int = 128) -> np.ndarray:
    vector = np.zeros(dimension)
    vector[index] = 1.0
    return vector


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def random_candidates(rng):
    return [make_candidate(rng.normal(size=128)) for _ in range(40)]


class TestCosineSimilarity:
    """Properties of the pairwise score."""

    def test_self_similarity_through_rank(self, rng):
        for _ in range(10):
            embedding = rng.normal(size=128)
            result = rank(embedding, [make_candidate(embedding)], threshold=0.0, limit=1)
            assert len(result) == 1
            assert result[0].similarity == pytest.approx(1.0)

    def test_symmetry(self, rng):
        for _ in range(10):
            a, b = rng.normal(size=128), rng.normal(size=128)
            assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_zero_vector_scores_zero(self, rng):
        zero = np.zeros(128)
        score = cosine_similarity(zero, rng.normal(size=128))
        assert score == 0.0
        assert not math.isnan(score)
        assert cosine_similarity(zero, zero) == 0.0

    def test_zero_vector_candidate_is_not_matched_at_positive_threshold(self):
        result = rank(basis(0), [make_candidate(np.zeros(128))], threshold=0.1, limit=5)
        assert result == []

    def test_result_is_clamped(self):
        vector = np.full(128, 1e-3)
        assert cosine_similarity(vector, vector) <= 1.0

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError) as exc_info:
            cosine_similarity(np.ones(128), np.ones(64))
        assert exc_info.value.expected == 128
        assert exc_info.value.actual == 64


class TestRank:
    """Ranking, thresholding and truncation."""

    def test_scenario_orthogonal_and_diagonal(self):
        diagonal = np.zeros(128)
        diagonal[0] = diagonal[1] = 0.7071
        first = make_candidate(basis(0))
        second = make_candidate(basis(1))
        third = make_candidate(diagonal)

        result = rank(basis(0), [first, second, third], threshold=0.6, limit=50)

        assert [m.face_id for m in result] == [first.face_id, third.face_id]
        assert result[0].similarity == pytest.approx(1.0)
        assert result[1].similarity == pytest.approx(0.7071, abs=1e-4)

    def test_empty_candidates(self):
        assert rank(basis(0), [], threshold=0.6, limit=50) == []

    def test_limit_keeps_best_sixty_to_fifty(self, rng):
        query = basis(0)
        candidates = []
        for i in range(60):
            # Every candidate is close to the query, with a distinct score
            vector = basis(0) + (i + 1) * 0.001 * basis(1)
            candidates.append(make_candidate(vector))
        rng.shuffle(candidates)

        result = rank(query, candidates, threshold=0.6, limit=50)

        all_scores = sorted(
            (cosine_similarity(query, c.embedding) for c in candidates), reverse=True
        )
        assert len(result) == 50
        assert [m.similarity for m in result] == pytest.approx(all_scores[:50])

    @pytest.mark.parametrize("limit", [1, 5, 39, 40, 100])
    def test_limit_boundedness(self, random_candidates, limit):
        result = rank(np.ones(128), random_candidates, threshold=0.0, limit=limit)
        assert len(result) <= limit

    def test_threshold_monotonicity(self, rng, random_candidates):
        query = rng.normal(size=128)
        sizes = [
            len(rank(query, random_candidates, threshold=t, limit=100))
            for t in np.linspace(0.0, 1.0, 21)
        ]
        assert all(earlier >= later for earlier, later in zip(sizes, sizes[1:]))

    def test_ordering(self, rng, random_candidates):
        result = rank(rng.normal(size=128), random_candidates, threshold=0.0, limit=100)
        scores = [m.similarity for m in result]
        assert scores == sorted(scores, reverse=True)

    def test_ties_keep_input_order(self):
        candidates = [make_candidate(basis(0)) for _ in range(3)]
        result = rank(basis(0), candidates, threshold=0.5, limit=10)
        assert [m.face_id for m in result] == [c.face_id for c in candidates]

    def test_dimension_mismatch_fails_whole_search(self):
        candidates = [make_candidate(basis(0)), make_candidate(np.ones(64))]
        with pytest.raises(DimensionMismatchError):
            rank(basis(0), candidates, threshold=0.0, limit=10)

    @pytest.mark.parametrize("threshold,limit", [(-0.1, 10), (1.5, 10), (0.5, 0)])
    def test_invalid_policy(self, threshold, limit):
        with pytest.raises(ValueError):
            rank(basis(0), [make_candidate(basis(0))], threshold=threshold, limit=limit)

    def test_negative_scores_excluded_at_zero_threshold(self):
        result = rank(basis(0), [make_candidate(-basis(0))], threshold=0.0, limit=10)
        assert result == []


class TestHelpers:
    def test_euclidean_distance(self):
        assert euclidean_distance([0, 0], [3, 4]) == pytest.approx(5.0)
        with pytest.raises(DimensionMismatchError):
            euclidean_distance([0, 0], [1, 2, 3])

    def test_best_per_photo_keeps_first_of_each_photo(self):
        photo_a, photo_b = uuid.uuid4(), uuid.uuid4()
        matches = [
            MatchCandidate(photo_id=photo_a, face_id=uuid.uuid4(), similarity=0.95),
            MatchCandidate(photo_id=photo_b, face_id=uuid.uuid4(), similarity=0.9),
            MatchCandidate(photo_id=photo_a, face_id=uuid.uuid4(), similarity=0.8),
        ]
        result = best_per_photo(matches)
        assert [m.photo_id for m in result] == [photo_a, photo_b]
        assert result[0].similarity == 0.95

    @pytest.mark.parametrize("similarity,expected", [
        (0.0, 0),
        (0.604, 60),
        (0.625, 63),
        (0.125, 13),
        (0.7071, 71),
        (1.0, 100),
        (1.2, 100),
        (-0.3, 0),
    ])
    def test_confidence_percent(self, similarity, expected):
        assert confidence_percent(similarity) == expected

    def test_policy_resolve_falls_back_to_default(self):
        default = ScoringPolicy(threshold=0.7, limit=20)
        assert ScoringPolicy.resolve(None, None, default=default) == default
        resolved = ScoringPolicy.resolve(0.5, None, default=default)
        assert resolved.threshold == 0.5
        assert resolved.limit == 20
