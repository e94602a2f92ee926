"""Tests for count / class accuracy scoring"""

import itertools
import random

import pytest

from rareplanes_bench.scoring.scorer import class_accuracy, count_accuracy, score_image


class TestCountAccuracy:
    def test_both_zero(self):
        assert count_accuracy(0, 0) == 1.0

    def test_one_zero(self):
        assert count_accuracy(0, 3) == 0.0
        assert count_accuracy(3, 0) == 0.0

    def test_ratio(self):
        assert count_accuracy(3, 2) == pytest.approx(2 / 3)

    def test_symmetry(self):
        for a, p in itertools.product(range(8), repeat=2):
            assert count_accuracy(a, p) == count_accuracy(p, a)

    def test_identity(self):
        for a in range(10):
            assert count_accuracy(a, a) == 1.0


class TestClassAccuracy:
    def test_identical_multisets(self):
        assert class_accuracy([0, 1, 1], [0, 1, 1]) == 1.0

    def test_identical_in_different_order(self):
        assert class_accuracy([1, 0, 1], [1, 1, 0]) == 1.0

    def test_both_empty(self):
        assert class_accuracy([], []) == 1.0

    def test_one_empty(self):
        assert class_accuracy([2], []) == 0.0
        assert class_accuracy([], [2]) == 0.0

    def test_same_length_partial_match(self):
        # one of three matches
        assert class_accuracy([0, 1, 2], [0, 3, 4]) == pytest.approx(1 / 3)

    def test_duplicates_are_meaningful(self):
        # only one of the two predicted 1s can match
        assert class_accuracy([0, 1], [1, 1]) == pytest.approx(0.5)

    def test_length_mismatch_formula(self):
        # correct = 2, max = 3, min = 2 -> (2/3) * (2/3)
        assert class_accuracy([0, 1, 1], [0, 1]) == pytest.approx(4 / 9)

    def test_over_prediction_formula(self):
        # correct = 1, max = 4, min = 1 -> (1/4) * (1/4)
        assert class_accuracy([3], [3, 3, 3, 3]) == pytest.approx(1 / 16)

    def test_permutation_invariance(self):
        rng = random.Random(7)
        for _ in range(50):
            actual = [rng.randint(0, 6) for _ in range(rng.randint(0, 6))]
            predicted = [rng.randint(0, 6) for _ in range(rng.randint(0, 6))]
            expected = class_accuracy(actual, predicted)
            shuffled_actual = actual[:]
            shuffled_predicted = predicted[:]
            rng.shuffle(shuffled_actual)
            rng.shuffle(shuffled_predicted)
            assert class_accuracy(shuffled_actual, shuffled_predicted) == pytest.approx(expected)

    def test_result_within_unit_interval(self):
        rng = random.Random(11)
        for _ in range(100):
            actual = [rng.randint(0, 6) for _ in range(rng.randint(0, 8))]
            predicted = [rng.randint(0, 6) for _ in range(rng.randint(0, 8))]
            assert 0.0 <= class_accuracy(actual, predicted) <= 1.0


class TestScoreImage:
    def test_perfect(self):
        score = score_image(3, [0, 1, 1], 3, [0, 1, 1])
        assert score.count_accuracy == 1.0
        assert score.class_accuracy == 1.0

    def test_under_count(self):
        score = score_image(3, [0, 1, 1], 2, [0, 1])
        assert score.count_accuracy == pytest.approx(0.667, abs=1e-3)
        assert score.class_accuracy == pytest.approx(4 / 9)
