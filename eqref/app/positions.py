from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, NamedTuple


class Position(NamedTuple):
    """Line/column location; columns count code points within the line."""

    line: int
    column: int


@dataclass(frozen=True)
class TextRange:
    """Half-open span [start, end) between two positions."""

    start: Position
    end: Position

    @classmethod
    def on_line(cls, line: int, start: int, end: int) -> "TextRange":
        return cls(Position(line, start), Position(line, end))

    def overlaps(self, other: "TextRange") -> bool:
        # A caret touching either boundary does not count as overlap.
        return other.start < self.end and self.start < other.end


def merge_ranges(ranges: Iterable[TextRange]) -> list[TextRange]:
    """Sort ranges and fuse the ones that overlap or touch."""
    merged: list[TextRange] = []
    for rng in sorted(ranges, key=lambda r: (r.start, r.end)):
        if rng.end < rng.start:
            rng = TextRange(rng.end, rng.start)
        if merged and rng.start <= merged[-1].end:
            last = merged[-1]
            if rng.end > last.end:
                merged[-1] = TextRange(last.start, rng.end)
            continue
        merged.append(rng)
    return merged
