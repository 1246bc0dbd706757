"""Tests for embedding validation."""
import numpy as np
import pytest

from facefinder.core.exceptions import DimensionMismatchError, MalformedEmbeddingError
from facefinder.domain.embedding import ensure_dimension, ensure_well_formed, is_well_formed
from facefinder.domain.entities.face import BoundingBox, Detection


@pytest.mark.parametrize("vector", [
    [0.1, 0.2, 0.3],
    np.zeros(128),
    np.arange(5),
    (1.0, -1.0),
])
def test_well_formed(vector):
    assert is_well_formed(vector)


@pytest.mark.parametrize("vector", [
    None,
    [],
    [0.1, float("nan")],
    [float("inf"), 1.0],
    [[0.1, 0.2], [0.3, 0.4]],
    ["a", "b"],
    "0.1,0.2",
    [True, False],
    [[1.0], [1.0, 2.0]],
])
def test_malformed(vector):
    assert not is_well_formed(vector)
    with pytest.raises(MalformedEmbeddingError):
        ensure_well_formed(vector)


def test_ensure_well_formed_returns_float_array():
    result = ensure_well_formed([1, 2, 3])
    assert result.dtype == np.float64
    assert result.tolist() == [1.0, 2.0, 3.0]


def test_ensure_dimension():
    ensure_dimension(np.zeros(128), 128)
    with pytest.raises(DimensionMismatchError):
        ensure_dimension(np.zeros(64), 128)


class TestDetection:
    def test_rejects_malformed_embedding(self):
        with pytest.raises(MalformedEmbeddingError):
            Detection(
                embedding=[float("nan")] * 4,
                bounding_box=BoundingBox(x=0, y=0, width=10, height=10),
                confidence=0.9,
            )

    @pytest.mark.parametrize("confidence", [-0.1, 1.1])
    def test_rejects_confidence_out_of_range(self, confidence):
        with pytest.raises(ValueError):
            Detection(
                embedding=[0.1, 0.2],
                bounding_box=BoundingBox(x=0, y=0, width=10, height=10),
                confidence=confidence,
            )

    def test_is_immutable(self):
        detection = Detection(
            embedding=[0.1, 0.2],
            bounding_box=BoundingBox(x=0, y=0, width=10, height=10),
            confidence=0.9,
        )
        assert detection.dimension == 2
        with pytest.raises(ValueError):
            detection.confidence = 0.5

    def test_bounding_box_rejects_negative_values(self):
        with pytest.raises(ValueError):
            BoundingBox(x=-1, y=0, width=10, height=10)
