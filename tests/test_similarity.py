"""Tests for relmap.similarity module."""

from __future__ import annotations

import pytest

from relmap.similarity import cosine_similarity


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([0.3, 0.4], [0.3, 0.4]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_ignores_magnitude(self):
        assert cosine_similarity([1.0, 1.0], [10.0, 10.0]) == pytest.approx(1.0)

    def test_known_angle(self):
        # cos(60°) = 0.5
        assert cosine_similarity([1.0, 0.0], [0.5, 0.8660254037844386]) == pytest.approx(0.5)

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0
        assert cosine_similarity([1.0, 2.0, 3.0], [0.0, 0.0, 0.0]) == 0.0

    def test_dimension_mismatch_raises(self):
        with pytest.raises(ValueError, match="dimensions differ"):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    def test_result_clamped_to_unit_range(self):
        vec = [0.1] * 1536
        result = cosine_similarity(vec, vec)
        assert -1.0 <= result <= 1.0

    def test_symmetric(self):
        a, b = [0.2, -0.7, 0.1], [0.9, 0.3, -0.4]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))
