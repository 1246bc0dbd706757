"""Embedding validation primitives.

Embeddings are validated once, when they enter the system (detector output or
database rows), so that ranking only has to deal with the zero-norm case.
"""
from typing import Any, Sequence, Union

import numpy as np

from facefinder.core.exceptions import DimensionMismatchError, MalformedEmbeddingError

EmbeddingLike = Union[np.ndarray, Sequence[float]]


def is_well_formed(vector: Any) -> bool:
    """Return True if vector is a non-empty 1-D sequence of finite real numbers."""
    if vector is None or isinstance(vector, (str, bytes)):
        return False
    try:
        array = np.asarray(vector)
    except (TypeError, ValueError):
        return False
    if array.ndim != 1 or array.size == 0:
        return False
    # bool is a subclass of int, but a vector of flags is not an embedding
    if array.dtype.kind not in ("i", "u", "f"):
        return False
    return bool(np.all(np.isfinite(array)))


def ensure_well_formed(vector: Any) -> np.ndarray:
    """Return the embedding as a float64 array.

    Raises:
        MalformedEmbeddingError: If the vector is empty, not one-dimensional,
            not numeric, or contains NaN or infinite values
    """
    if not is_well_formed(vector):
        raise MalformedEmbeddingError(
            "Embedding must be a non-empty sequence of finite numbers",
            details={"type": type(vector).__name__},
        )
    return np.asarray(vector, dtype=np.float64)


def ensure_dimension(vector: np.ndarray, dimension: int) -> None:
    """Raise DimensionMismatchError unless the vector has the given length."""
    if len(vector) != dimension:
        raise DimensionMismatchError(expected=dimension, actual=len(vector))
