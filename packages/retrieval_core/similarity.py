from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .errors import DimensionMismatchError
from .models import ScoredIndex

_EPSILON = 1e-12


def l2_normalize(vector: Sequence[float]) -> List[float]:
    """Scale a vector to unit length; an all-zero vector stays all-zero."""
    arr = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(arr)) + _EPSILON
    return (arr / norm).tolist()


def score(a: Sequence[float], b: Sequence[float]) -> float:
    """Dot product, i.e. cosine similarity for unit-length inputs. `top_k` is the batch form."""
    if len(a) != len(b):
        raise DimensionMismatchError(f"Vector lengths differ: {len(a)} != {len(b)}")
    return float(np.dot(np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64)))


def top_k(query: Sequence[float], vectors: Sequence[Sequence[float]], k: int) -> List[ScoredIndex]:
    """
    Score `query` against every vector and return the `k` best, highest first.

    Ties keep their input order. `k <= 0` or no vectors gives an empty list.
    """
    if k <= 0 or not vectors:
        return []

    dim = len(query)
    for idx, vec in enumerate(vectors):
        if len(vec) != dim:
            raise DimensionMismatchError(
                f"Query has dimension {dim} but stored vector {idx} has {len(vec)}"
            )

    matrix = np.asarray(vectors, dtype=np.float64)
    scores = matrix @ np.asarray(query, dtype=np.float64)
    order = np.argsort(-scores, kind="stable")[: min(k, len(vectors))]
    return [ScoredIndex(index=int(i), score=float(scores[i])) for i in order]


__all__ = ["l2_normalize", "score", "top_k"]
