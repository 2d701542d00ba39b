from __future__ import annotations

from bisect import bisect_right


def _has_astral(text: str) -> bool:
    return any(ord(ch) > 0xFFFF for ch in text)


def utf16_positions(text: str) -> list[int]:
    """Map each code point index (plus the end) to its UTF-16 offset.

    Qt counts positions in UTF-16 units, so characters outside the BMP take
    two positions in a QTextDocument but one in a Python string.
    """
    positions = [0] * (len(text) + 1)
    offset = 0
    for index, ch in enumerate(text):
        positions[index] = offset
        offset += 2 if ord(ch) > 0xFFFF else 1
    positions[len(text)] = offset
    return positions


def to_utf16(text: str, column: int) -> int:
    column = max(0, min(column, len(text)))
    if not _has_astral(text[:column]):
        return column
    return utf16_positions(text)[column]


def from_utf16(text: str, position: int) -> int:
    """Inverse of :func:`to_utf16`; a position inside a surrogate pair rounds down."""
    if position <= 0:
        return 0
    if not _has_astral(text):
        return min(position, len(text))
    positions = utf16_positions(text)
    return max(0, min(len(text), bisect_right(positions, position) - 1))
