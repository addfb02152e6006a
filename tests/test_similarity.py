"""Tests for cosine similarity and ranking."""

from __future__ import annotations

import numpy as np
import pytest

from mdrag.index.similarity import cosine_scores, cosine_similarity, rank


class TestCosineSimilarity:
    def test_identical_vectors(self) -> None:
        a = np.array([0.3, -1.2, 4.0])

        assert cosine_similarity(a, a) == pytest.approx(1.0)

    def test_uses_euclidean_norm(self) -> None:
        """Parallel vectors of different length still score 1."""
        assert cosine_similarity(np.array([1.0, 2.0]), np.array([10.0, 20.0])) == pytest.approx(1.0)

    def test_orthogonal_and_opposite(self) -> None:
        assert cosine_similarity(np.array([1.0, 0.0]), np.array([0.0, 3.0])) == pytest.approx(0.0)
        assert cosine_similarity(np.array([1.0, 1.0]), np.array([-2.0, -2.0])) == pytest.approx(-1.0)

    def test_symmetric(self) -> None:
        rng = np.random.default_rng(7)
        for _ in range(20):
            a, b = rng.normal(size=8), rng.normal(size=8)
            assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_zero_norm_is_zero(self) -> None:
        zero = np.zeros(3)

        assert cosine_similarity(zero, np.array([1.0, 2.0, 3.0])) == 0.0
        assert cosine_similarity(zero, zero) == 0.0

    def test_dimension_mismatch(self) -> None:
        with pytest.raises(ValueError):
            cosine_similarity(np.ones(3), np.ones(4))


class TestCosineScores:
    def test_matches_pairwise(self) -> None:
        matrix = np.array([[1.0, 0.0], [1.0, 1.0], [0.0, 0.0], [-1.0, 0.5]])
        query = np.array([2.0, 1.0])

        scores = cosine_scores(query, matrix)

        expected = [cosine_similarity(query, row) for row in matrix]
        assert scores == pytest.approx(expected)

    def test_empty_matrix(self) -> None:
        assert len(cosine_scores(np.ones(3), np.zeros((0, 3)))) == 0


class TestRank:
    def test_descending_order(self) -> None:
        matrix = np.array([[0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])

        results = rank(np.array([1.0, 0.1]), matrix, k=3)

        assert [idx for idx, _ in results] == [1, 2, 0]
        scores = [score for _, score in results]
        assert scores == sorted(scores, reverse=True)

    def test_ties_prefer_lower_index(self) -> None:
        matrix = np.array([[0.0, 1.0], [2.0, 0.0], [5.0, 0.0], [1.0, 0.0]])

        results = rank(np.array([1.0, 0.0]), matrix, k=4)

        assert [idx for idx, _ in results] == [1, 2, 3, 0]

    def test_default_k_is_four(self) -> None:
        matrix = np.eye(6)

        assert len(rank(np.ones(6), matrix)) == 4

    def test_k_larger_than_corpus(self) -> None:
        matrix = np.eye(2)

        assert len(rank(np.ones(2), matrix, k=10)) == 2

    def test_empty_corpus(self) -> None:
        assert rank(np.ones(3), np.zeros((0, 0)), k=3) == []

    def test_invalid_k(self) -> None:
        with pytest.raises(ValueError):
            rank(np.ones(2), np.eye(2), k=0)

    def test_identical_vector_ranks_first(self) -> None:
        rng = np.random.default_rng(1)
        matrix = rng.normal(size=(10, 5))

        top = rank(matrix[6], matrix, k=1)

        assert top[0][0] == 6
        assert top[0][1] == pytest.approx(1.0)
