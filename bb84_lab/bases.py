from __future__ import annotations

from enum import Enum
from typing import List, Optional, Sequence

from numpy.random import Generator, default_rng

from .errors import IndexOutOfRange


class Basis(str, Enum):
    RECTILINEAR = "Z"
    DIAGONAL = "X"


class Party(str, Enum):
    ALICE = "alice"
    EVE = "eve"
    BOB = "bob"


def flip_basis(basis: Basis) -> Basis:
    return Basis.DIAGONAL if basis is Basis.RECTILINEAR else Basis.RECTILINEAR


def default_bases(n: int) -> List[Basis]:
    return [Basis.RECTILINEAR] * n


def randomize(n: int, rng: Optional[Generator] = None) -> List[Basis]:
    """Draw ``n`` independent bases, each diagonal with probability 0.5."""
    rng = rng if rng is not None else default_rng()
    draws = rng.integers(0, 2, size=n)
    return [Basis.DIAGONAL if draw else Basis.RECTILINEAR for draw in draws]


def toggle(seq: Sequence[Basis], index: int) -> List[Basis]:
    # copy-on-write
    if not 0 <= index < len(seq):
        raise IndexOutOfRange(index, len(seq))
    updated = list(seq)
    updated[index] = flip_basis(updated[index])
    return updated
