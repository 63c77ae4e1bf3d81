import pytest
from numpy.random import default_rng

from bb84_lab import NoiseChannel


def test_noise_defaults():
    channel = NoiseChannel()

    assert channel.flip_probability == pytest.approx(0.05)
    assert channel.min_bits == 128


@pytest.mark.parametrize("num_bits, allowed", [(0, False), (120, False), (127, False), (128, True), (1024, True)])
def test_noise_length_guard(num_bits, allowed):
    assert NoiseChannel().allows(num_bits) is allowed


def test_noise_extremes():
    rng = default_rng(3)
    always = NoiseChannel(flip_probability=1.0)
    never = NoiseChannel(flip_probability=0.0)

    assert [always.apply(bit, rng) for bit in (0, 1)] == [1, 0]
    assert [never.apply(bit, rng) for bit in (0, 1)] == [0, 1]


def test_noise_flip_rate():
    rng = default_rng(2024)
    channel = NoiseChannel()
    flips = sum(channel.apply(0, rng) for _ in range(10_000))

    assert flips / 10_000 == pytest.approx(0.05, abs=0.015)


@pytest.mark.parametrize("kwargs", [{"flip_probability": 1.5}, {"flip_probability": -0.1}, {"min_bits": -1}])
def test_noise_invalid_parameters(kwargs):
    with pytest.raises(ValueError):
        NoiseChannel(**kwargs)
