from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from numpy.random import Generator, default_rng

from .bases import Basis
from .errors import DegenerateSample

logger = logging.getLogger(__name__)

ERROR_THRESHOLD = 11.0


class Verdict(str, Enum):
    CHANNEL_SECURE = "channel_secure"
    EAVESDROPPING_DETECTED = "eavesdropping_detected"


@dataclass(frozen=True)
class ErrorEstimate:
    sample_indices: Tuple[int, ...]
    error_count: int
    error_rate: float
    verdict: Optional[Verdict]
    degenerate: bool = False

    @property
    def sample_size(self) -> int:
        return len(self.sample_indices)

    @property
    def eavesdropping_detected(self) -> bool:
        return self.verdict is Verdict.EAVESDROPPING_DETECTED


def matching_indices(alice_bases: Sequence[Basis], bob_bases: Sequence[Basis]) -> List[int]:
    if len(alice_bases) != len(bob_bases):
        raise ValueError("basis sequences must have the same length")
    return [i for i, (a, b) in enumerate(zip(alice_bases, bob_bases)) if a == b]


def sift(bits: Sequence[int], indices: Sequence[int]) -> List[int]:
    return [bits[i] for i in indices]


def sample_size(key_length: int) -> int:
    if key_length <= 0:
        return 0
    # 30% of the sifted key, rounded up
    return max(1, math.ceil(key_length * 3 / 10))


def draw_sample(key_length: int, rng: Optional[Generator] = None) -> List[int]:
    """Pick ``sample_size(key_length)`` distinct positions of the sifted key."""
    if key_length <= 0:
        raise DegenerateSample("cannot sample an empty sifted key")
    rng = rng if rng is not None else default_rng()
    permutation = rng.permutation(key_length)
    return [int(i) for i in permutation[: sample_size(key_length)]]


def estimate_errors(
    alice_sifted: Sequence[int],
    bob_sifted: Sequence[int],
    rng: Optional[Generator] = None,
) -> ErrorEstimate:
    if len(alice_sifted) != len(bob_sifted):
        raise ValueError("sifted keys must have the same length")

    try:
        sample = draw_sample(len(alice_sifted), rng)
    except DegenerateSample:
        logger.warning("Sifted key is empty; reporting a degenerate zero-sample estimate")
        return ErrorEstimate(sample_indices=(), error_count=0, error_rate=0.0, verdict=None, degenerate=True)

    error_count = sum(1 for i in sample if alice_sifted[i] != bob_sifted[i])
    error_rate = 100.0 * error_count / len(sample)
    verdict = Verdict.EAVESDROPPING_DETECTED if error_rate > ERROR_THRESHOLD else Verdict.CHANNEL_SECURE
    return ErrorEstimate(
        sample_indices=tuple(sample),
        error_count=error_count,
        error_rate=error_rate,
        verdict=verdict,
    )


def detection_probability(qber: float, sample: int) -> float:
    """Chance that a sample of ``sample`` bits contains at least one error."""
    if sample <= 0:
        return 0.0
    return 1.0 - (1.0 - qber) ** sample
