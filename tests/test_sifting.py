import numpy as np
import pytest
from numpy.random import default_rng

from bb84_lab import Basis, DegenerateSample, Verdict, estimate_errors, matching_indices, sample_size, sift
from bb84_lab.sifting import detection_probability, draw_sample

Z = Basis.RECTILINEAR
X = Basis.DIAGONAL


def test_matching_indices_and_sift_preserve_order():
    alice = [Z, X, X, Z, Z]
    bob = [Z, Z, X, X, Z]
    indices = matching_indices(alice, bob)

    assert indices == [0, 2, 4]
    assert sift([1, 0, 1, 1, 0], indices) == [1, 1, 0]


def test_matching_indices_requires_equal_lengths():
    with pytest.raises(ValueError):
        matching_indices([Z], [Z, X])


@pytest.mark.parametrize("length, expected", [(0, 0), (1, 1), (3, 1), (4, 2), (10, 3), (11, 4), (100, 30)])
def test_sample_size(length, expected):
    assert sample_size(length) == expected


def test_draw_sample_without_replacement():
    sample = draw_sample(50, default_rng(8))

    assert len(sample) == 15
    assert len(set(sample)) == 15
    assert all(0 <= i < 50 for i in sample)


def test_draw_sample_on_empty_key():
    with pytest.raises(DegenerateSample):
        draw_sample(0)


def test_identical_keys_are_secure():
    key = [int(b) for b in default_rng(1).integers(0, 2, size=64)]
    estimate = estimate_errors(key, list(key), default_rng(2))

    assert estimate.sample_size == 20
    assert estimate.error_count == 0
    assert estimate.error_rate == pytest.approx(0.0)
    assert estimate.verdict is Verdict.CHANNEL_SECURE
    assert not estimate.degenerate


def test_fully_disagreeing_keys_are_detected():
    estimate = estimate_errors([0] * 20, [1] * 20, default_rng(3))

    assert estimate.error_count == estimate.sample_size == 6
    assert estimate.error_rate == pytest.approx(100.0)
    assert estimate.eavesdropping_detected


def test_single_bit_key_samples_one_bit():
    estimate = estimate_errors([1], [1])

    assert estimate.sample_indices == (0,)
    assert estimate.verdict is Verdict.CHANNEL_SECURE


def test_empty_key_gives_degenerate_estimate():
    estimate = estimate_errors([], [])

    assert estimate.degenerate
    assert estimate.sample_size == 0
    assert estimate.error_count == 0
    assert estimate.error_rate == 0.0
    assert estimate.verdict is None


def test_estimate_does_not_mutate_keys():
    alice, bob = [0, 1, 1, 0], [0, 1, 0, 0]
    estimate_errors(alice, bob, default_rng(0))

    assert alice == [0, 1, 1, 0]
    assert bob == [0, 1, 0, 0]


def test_estimate_requires_equal_lengths():
    with pytest.raises(ValueError):
        estimate_errors([0, 1], [0])


def test_detection_probability():
    assert detection_probability(0.25, 0) == 0.0
    assert detection_probability(0.25, 4) == pytest.approx(1.0 - 0.75**4)


class _InOrder:
    def permutation(self, n):
        return np.arange(n)


@pytest.mark.parametrize("errors, verdict", [(11, Verdict.CHANNEL_SECURE), (12, Verdict.EAVESDROPPING_DETECTED)])
def test_threshold_is_strictly_above_eleven_percent(errors, verdict):
    # 333 sifted bits give a 100-bit sample; in-order sampling takes positions 0..99
    alice = [0] * 333
    bob = [1] * errors + [0] * (333 - errors)
    estimate = estimate_errors(alice, bob, _InOrder())

    assert estimate.sample_size == 100
    assert estimate.error_count == errors
    assert estimate.error_rate == pytest.approx(float(errors))
    assert estimate.verdict is verdict
