"""
Encoded polyline codec.

Wraps the ``polyline`` package for (lat, lng) sequences. Each coordinate
delta is zig-zag encoded and split into 5-bit chunks offset by 63, so a valid
string only ever contains the characters ``?`` through ``~``. Input is checked
against that alphabet and chunk structure before it reaches the decoder.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import polyline

POLYLINE_ALPHABET_MIN = 63
POLYLINE_ALPHABET_MAX = 126

# Chunks below this carry no continuation bit and end a value.
_TERMINATOR_LIMIT = POLYLINE_ALPHABET_MIN + 0x20


def _is_terminator(ch: str) -> bool:
    return POLYLINE_ALPHABET_MIN <= ord(ch) < _TERMINATOR_LIMIT


def encode_polyline(
    points: Iterable[Sequence[float]],
    precision: int = 5,
) -> str:
    """Encode (lat, lng) pairs into a polyline string."""
    coords = [(float(point[0]), float(point[1])) for point in points]
    if not coords:
        return ""
    return polyline.encode(coords, precision)


def decode_polyline(encoded: str, precision: int = 5) -> list[tuple[float, float]]:
    """Decode a polyline string into (lat, lng) pairs.

    Raises:
        ValueError: If the string is truncated or contains characters outside
            the polyline alphabet.
    """
    if not encoded:
        return []
    if any(not POLYLINE_ALPHABET_MIN <= ord(ch) <= POLYLINE_ALPHABET_MAX for ch in encoded):
        raise ValueError("Invalid polyline character")
    if not _is_terminator(encoded[-1]) or sum(map(_is_terminator, encoded)) % 2:
        raise ValueError("Invalid polyline encoding")
    return [(lat, lng) for lat, lng in polyline.decode(encoded, precision)]


def estimate_point_count(encoded: str) -> int:
    """Estimate the number of points without a full decode.

    Every encoded value ends on a chunk below 0x20, and each point is two
    values, so the terminator count halved is the point count.
    """
    return sum(1 for ch in encoded if _is_terminator(ch)) // 2
