# galaxy_asm/core/numbers.py
"""
Number modulation for the Galaxy wire format.

Layout of a nonzero value v::

    sign prefix   01 (v >= 0) | 10 (v < 0)
    width code    one '1' per 4-bit quad of |v|, then a terminating '0'
    magnitude     |v| in binary, left-padded with zeros to whole quads

Zero is the special 3-bit literal ``010``.

    >>> modulate_number(1)
    '01100001'
    >>> modulate_number(-255)
    '1011011111111'
"""

from __future__ import annotations

from typing import Tuple

from galaxy_asm.core.ops import EncodedNumber, Modulation
from galaxy_asm.errors import BadPrefix, BadWidthCode, InvalidBit, TrailingBits

POSITIVE_PREFIX = "01"
NEGATIVE_PREFIX = "10"
ZERO_BITS = "010"
QUAD = 4


def _value_of(n: EncodedNumber | int) -> int:
    if isinstance(n, EncodedNumber):
        return n.value
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError(f"modulate_number expects int or EncodedNumber, got {type(n).__name__}")
    return n


def modulate_number(n: EncodedNumber | int) -> str:
    """Encode a number; the modulation tag does not change the bits."""
    v = _value_of(n)
    if v == 0:
        return ZERO_BITS

    prefix = POSITIVE_PREFIX if v > 0 else NEGATIVE_PREFIX
    magnitude = format(abs(v), "b")
    quads = -(-len(magnitude) // QUAD)
    return prefix + "1" * quads + "0" + magnitude.zfill(quads * QUAD)


def check_bits(bits: str) -> None:
    """Raise InvalidBit on the first character that is not 0 or 1."""
    for i, ch in enumerate(bits):
        if ch != "0" and ch != "1":
            raise InvalidBit(bits, i)


def read_number(bits: str, pos: int = 0) -> Tuple[EncodedNumber, int]:
    """
    Decode one number starting at ``pos``.

    Returns (number, next_pos). The result is Demodulated; callers that want
    the wire state tag it themselves.

    Raises:
        BadPrefix: the two bits at ``pos`` are not 01 / 10
        BadWidthCode: the width code or magnitude runs past the end
    """
    prefix = bits[pos:pos + 2]
    if prefix == POSITIVE_PREFIX:
        sign = 1
    elif prefix == NEGATIVE_PREFIX:
        sign = -1
    else:
        raise BadPrefix(bits, pos)

    i = pos + 2
    quads = 0
    while True:
        if i >= len(bits):
            raise BadWidthCode(bits, pos)
        if bits[i] == "0":
            i += 1
            break
        quads += 1
        i += 1

    end = i + quads * QUAD
    if end > len(bits):
        raise BadWidthCode(bits, pos)

    magnitude = int(bits[i:end], 2) if quads else 0
    return EncodedNumber(sign * magnitude, Modulation.DEMODULATED), end


def demodulate_number(bits: str) -> EncodedNumber:
    """Decode a complete bit string holding exactly one number."""
    check_bits(bits)
    n, end = read_number(bits, 0)
    if end != len(bits):
        raise TrailingBits(bits, end)
    return n
