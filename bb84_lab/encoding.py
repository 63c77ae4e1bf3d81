"""Message to bit-string conversion.

Each character contributes its code point as an 8-bit big-endian group.
Code points above 255 are wrapped to their low 8 bits, so only the 0-255
range survives a round trip through :func:`decode`.
"""

from __future__ import annotations

from typing import List, Sequence

BITS_PER_CHAR = 8


def encode(message: str) -> List[int]:
    bits: List[int] = []
    for char in message:
        code = ord(char) & 0xFF
        bits.extend(int(bit) for bit in f"{code:08b}")
    return bits


def decode(bits: Sequence[int]) -> str:
    if len(bits) % BITS_PER_CHAR:
        raise ValueError("bit sequence length must be a multiple of 8")
    chars = []
    for start in range(0, len(bits), BITS_PER_CHAR):
        group = bits[start : start + BITS_PER_CHAR]
        chars.append(chr(int(bits_to_string(group), 2)))
    return "".join(chars)


def bits_to_string(bits: Sequence[int]) -> str:
    return "".join(str(bit) for bit in bits)
