"""Cosine similarity and brute-force ranking.

A linear scan over every stored vector, O(C*N). The catalog is small enough
that no ANN index is kept; adding one would also need an invalidation contract
for edited and deleted books.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Sequence, TypeVar

import numpy as np

K = TypeVar("K", bound=Hashable)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """dot(a, b) / (|a| * |b|).

    Returns 0.0 ("no match") for empty or zero-magnitude vectors and for
    vectors of different lengths, so ranking never has to special-case them.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    score = float(np.dot(va, vb)) / (norm_a * norm_b)
    # Rounding can push |score| a hair past 1.0
    return max(-1.0, min(1.0, score))


def rank(
    query: Sequence[float],
    candidates: Iterable[tuple[K, Sequence[float]]],
    limit: int,
) -> list[tuple[K, float]]:
    """Score candidates against the query, best first, at most ``limit`` results.

    Equal scores keep their input order (sort is stable).
    """
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    if limit == 0:
        return []

    scored = [(key, cosine_similarity(query, vector)) for key, vector in candidates]
    scored.sort(key=lambda x: x[1], reverse=True)
    return scored[:limit]
