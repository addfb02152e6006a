"""Cosine similarity scoring and top-k ranking."""

from __future__ import annotations

from typing import List, Tuple

import numpy as np

DEFAULT_TOP_K = 4


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``; 0.0 when either norm is zero."""
    left = np.asarray(a, dtype="float64").ravel()
    right = np.asarray(b, dtype="float64").ravel()
    if left.shape != right.shape:
        raise ValueError(f"Dimension mismatch: {left.shape[0]} != {right.shape[0]}")

    denominator = np.linalg.norm(left) * np.linalg.norm(right)
    if denominator == 0:
        return 0.0
    return float(np.clip(np.dot(left, right) / denominator, -1.0, 1.0))


def cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Score ``query`` against every row of ``matrix``."""
    vectors = np.asarray(matrix, dtype="float64")
    if vectors.size == 0:
        return np.zeros(len(vectors), dtype="float64")

    target = np.asarray(query, dtype="float64").ravel()
    if vectors.ndim != 2 or vectors.shape[1] != target.shape[0]:
        raise ValueError(f"Dimension mismatch: query has {target.shape[0]}, cache has {vectors.shape[-1]}")

    denominators = np.linalg.norm(vectors, axis=1) * np.linalg.norm(target)
    scores = np.zeros(vectors.shape[0], dtype="float64")
    nonzero = denominators > 0
    scores[nonzero] = (vectors[nonzero] @ target) / denominators[nonzero]
    return np.clip(scores, -1.0, 1.0)


def rank(query: np.ndarray, matrix: np.ndarray, *, k: int = DEFAULT_TOP_K) -> List[Tuple[int, float]]:
    """Return the top ``k`` ``(index, score)`` pairs, most similar first.

    Equal scores keep ascending index order. Fewer than ``k`` rows returns
    all of them.
    """
    if k < 1:
        raise ValueError("k must be at least 1")

    scores = cosine_scores(query, matrix)
    order = np.argsort(-scores, kind="stable")[:k]
    return [(int(idx), float(scores[idx])) for idx in order]
