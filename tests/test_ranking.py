"""
Tests for top-K ranking and softmax.
"""

import math

import numpy as np
import pytest

from core.errors import InvalidArgument
from core.models import ClassLabels, Prediction
from core.ranking import ScoreRanker, rank, softmax


class TestRank:
    def test_picks_highest_scores(self):
        result = rank([0.1, 0.7, 0.2], 2, ["cat", "dog", "bird"])
        assert result == [Prediction("dog", 0.7), Prediction("bird", 0.2)]

    def test_ties_keep_index_order(self):
        result = rank([0.5, 0.5], 2, ["a", "b"])
        assert result == [Prediction("a", 0.5), Prediction("b", 0.5)]

    def test_ties_among_many(self):
        scores = [0.2, 0.9, 0.2, 0.9, 0.2]
        result = rank(scores, 5, list("abcde"))
        assert [p.label for p in result] == ["b", "d", "a", "c", "e"]

    def test_k_zero_is_empty(self):
        assert rank([0.3, 0.1], 0, ["a", "b"]) == []

    def test_k_equal_to_length(self):
        result = rank([0.3, 0.1, 0.6], 3, ["a", "b", "c"])
        assert [p.label for p in result] == ["c", "a", "b"]

    def test_k_too_large(self):
        with pytest.raises(InvalidArgument):
            rank([0.3, 0.1], 3, ["a", "b"])

    def test_negative_k(self):
        with pytest.raises(InvalidArgument):
            rank([0.3, 0.1], -1, ["a", "b"])

    def test_empty_scores(self):
        with pytest.raises(InvalidArgument):
            rank([], 0, [])

    def test_label_count_mismatch(self):
        with pytest.raises(InvalidArgument):
            rank([0.3, 0.1], 1, ["a"])

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            rank([0.3], 2, ["a"])

    def test_scores_are_not_normalized(self):
        result = rank([2.5, -1.0, 7.0], 2, ["a", "b", "c"])
        assert [p.probability for p in result] == [7.0, 2.5]

    def test_nan_sorts_last(self):
        result = rank([float("nan"), 0.1, 0.4], 3, ["a", "b", "c"])
        assert [p.label for p in result[:2]] == ["c", "b"]
        assert math.isnan(result[2].probability)

    def test_accepts_numpy_vector(self):
        scores = np.array([[0.25, 0.5, 0.125]], dtype=np.float32)
        result = rank(scores, 1, ["a", "b", "c"])
        assert result == [Prediction("b", 0.5)]

    def test_is_pure(self):
        scores = [0.3, 0.1, 0.3, 0.9]
        labels = ["a", "b", "c", "d"]
        first = rank(scores, 3, labels)
        second = rank(scores, 3, labels)
        assert first == second
        assert scores == [0.3, 0.1, 0.3, 0.9]

    def test_descending_for_random_vectors(self):
        rng = np.random.default_rng(7)
        for _ in range(50):
            n = int(rng.integers(1, 40))
            scores = rng.integers(0, 5, size=n).astype(float)
            k = int(rng.integers(0, n + 1))
            result = rank(scores, k, [str(i) for i in range(n)])
            assert len(result) == k
            pairs = [(p.probability, int(p.label)) for p in result]
            assert pairs == sorted(pairs, key=lambda pair: (-pair[0], pair[1]))


class TestScoreRanker:
    def test_uses_bound_labels(self):
        ranker = ScoreRanker(ClassLabels.from_names(["cat", "dog", "bird"]))
        assert ranker.num_classes == 3
        assert ranker.rank([0.1, 0.7, 0.2], 1) == [Prediction("dog", 0.7)]


class TestSoftmax:
    def test_sums_to_one_and_keeps_order(self):
        probs = softmax([1.0, 3.0, 2.0])
        assert probs.sum() == pytest.approx(1.0)
        assert list(np.argsort(-probs)) == [1, 2, 0]

    def test_large_logits_are_stable(self):
        probs = softmax([1000.0, 1000.0])
        assert probs.tolist() == pytest.approx([0.5, 0.5])

    def test_empty(self):
        with pytest.raises(InvalidArgument):
            softmax([])
