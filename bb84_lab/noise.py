from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from numpy.random import Generator, default_rng

DEFAULT_FLIP_PROBABILITY = 0.05
DEFAULT_MIN_BITS = 128


def _clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


@dataclass
class NoiseChannel:
    """Bit-flip noise applied to the final measurement of a transmission.

    Short messages give samples too small for a stable error estimate, so
    noise is only allowed once the bit string reaches ``min_bits``.
    """

    flip_probability: float = DEFAULT_FLIP_PROBABILITY
    min_bits: int = DEFAULT_MIN_BITS

    def __post_init__(self) -> None:
        if not 0.0 <= self.flip_probability <= 1.0:
            raise ValueError("flip_probability must be between 0 and 1")
        if self.min_bits < 0:
            raise ValueError("min_bits must be non-negative")

    def allows(self, num_bits: int) -> bool:
        return num_bits >= self.min_bits

    def apply(self, bit: int, rng: Optional[Generator] = None) -> int:
        rng = rng if rng is not None else default_rng()
        if rng.random() < _clamp(self.flip_probability):
            return bit ^ 1
        return bit
