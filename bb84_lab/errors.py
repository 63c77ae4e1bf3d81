from __future__ import annotations

from typing import Iterable


class BB84Error(Exception):
    """Base class for every failure reported by the simulation engine."""


class InvalidTransition(BB84Error):
    def __init__(self, operation: str, stage: object, allowed: Iterable[object] = ()):
        self.operation = operation
        self.stage = stage
        self.allowed = tuple(allowed)
        names = ", ".join(str(getattr(item, "name", item)) for item in self.allowed) or "-"
        super().__init__(
            f"'{operation}' is not permitted in stage {getattr(stage, 'name', stage)} (allowed: {names})"
        )


class IndexOutOfRange(BB84Error, IndexError):
    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(f"basis index {index} out of range for sequence of length {length}")


class DegenerateSample(BB84Error):
    """Raised when a sample is requested from an empty sifted key."""
