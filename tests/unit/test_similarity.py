"""Unit tests for cosine similarity and top-k ranking."""

from __future__ import annotations

import pytest

from lexbrief.services.similarity import cosine_similarity, rank, safe_cosine_similarity
from lexbrief.utils.errors import DimensionMismatchError


class TestCosineSimilarity:
    def test_self_similarity_is_one(self) -> None:
        assert cosine_similarity([0.3, -1.2, 4.0], [0.3, -1.2, 4.0]) == pytest.approx(1.0)

    def test_symmetry(self) -> None:
        a, b = [1.0, 2.0, 3.0], [-2.0, 0.5, 1.0]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_orthogonal_and_opposite(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_zero_norm_scores_zero(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_strict_mismatch_raises(self) -> None:
        with pytest.raises(DimensionMismatchError) as exc_info:
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 3

    def test_lenient_mismatch_scores_zero(self) -> None:
        assert safe_cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0
        assert safe_cosine_similarity([1.0, 2.0], [2.0, 4.0]) == pytest.approx(1.0)


class TestRank:
    _QUERY = [1.0, 0.0]
    _CANDIDATES = [
        ("far", [0.0, 1.0]),
        ("near", [0.9, 0.1]),
        ("exact", [2.0, 0.0]),
        ("middle", [0.5, 0.5]),
    ]

    def test_descending_top_k(self) -> None:
        ranked = rank(self._QUERY, self._CANDIDATES, k=3)

        assert [c.id for c in ranked] == ["exact", "near", "middle"]
        scores = [c.similarity for c in ranked]
        assert scores == sorted(scores, reverse=True)

    def test_ties_keep_input_order(self) -> None:
        candidates = [("b", [1.0, 1.0]), ("a", [1.0, 1.0]), ("c", [1.0, 1.0])]
        ranked = rank([1.0, 1.0], candidates, k=3)

        assert [c.id for c in ranked] == ["b", "a", "c"]

    def test_k_larger_than_pool(self) -> None:
        assert len(rank(self._QUERY, self._CANDIDATES, k=10)) == 4

    def test_non_positive_k(self) -> None:
        assert rank(self._QUERY, self._CANDIDATES, k=0) == []

    def test_lenient_by_default(self) -> None:
        ranked = rank(self._QUERY, [("stale", [1.0, 0.0, 0.0]), ("ok", [1.0, 0.0])], k=2)

        assert [c.id for c in ranked] == ["ok", "stale"]
        assert ranked[1].similarity == 0.0

    def test_strict_raises_on_mismatch(self) -> None:
        with pytest.raises(DimensionMismatchError):
            rank(self._QUERY, [("stale", [1.0, 0.0, 0.0])], k=1, strict=True)
