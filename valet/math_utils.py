"""Vector math for semantic matching."""

from typing import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when the lengths differ or either magnitude is zero.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        return 0.0

    magnitude = np.linalg.norm(va) * np.linalg.norm(vb)
    if magnitude == 0:
        return 0.0
    return float(np.dot(va, vb) / magnitude)


def top_k(items: Sequence, scores: Sequence[float], k: int) -> list:
    """Return the k highest-scoring (item, score) pairs, best first.

    Ties keep input order.
    """
    indexed = list(zip(items, scores))
    indexed.sort(key=lambda pair: pair[1], reverse=True)
    return indexed[:k]
