"""Cosine similarity and top-k ranking over embedding vectors.

Two similarity policies exist:

* :func:`cosine_similarity` is strict and raises
  :class:`~lexbrief.utils.errors.DimensionMismatchError` when the vectors
  differ in length.  For callers that trust their inputs.
* :func:`safe_cosine_similarity` is lenient and scores a mismatch as 0.0.
  Composition uses it so that a stray vector from an older model cannot
  break a query.

Zero-norm vectors score 0.0 under both policies.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from lexbrief.models.knowledge import ScoredCandidate
from lexbrief.utils.errors import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*.

    Raises
    ------
    DimensionMismatchError
        If ``len(a) != len(b)``.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(expected=len(a), actual=len(b))
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def safe_cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Lenient cosine: 0.0 on length mismatch or zero norm."""
    if len(a) != len(b):
        return 0.0
    return cosine_similarity(a, b)


def rank(
    query: Sequence[float],
    candidates: Iterable[tuple[str, Sequence[float]]],
    k: int,
    strict: bool = False,
) -> list[ScoredCandidate]:
    """Return the *k* candidates most similar to *query*, best first.

    Ties keep the candidates' input order.  With ``strict=True`` a candidate
    whose dimension differs from the query raises
    :class:`DimensionMismatchError`; otherwise it scores 0.0.
    """
    if k <= 0:
        return []
    score = cosine_similarity if strict else safe_cosine_similarity
    scored = [ScoredCandidate(id=cid, similarity=score(query, vec)) for cid, vec in candidates]
    # sorted() is stable, so equal scores keep input order.
    scored = sorted(scored, key=lambda c: c.similarity, reverse=True)
    return scored[:k]
