from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from eqref.app.positions import TextRange, merge_ranges
from eqref.app.scanner import Label, LabelCache

REF_PATTERN = re.compile(r"\\ref\{(?P<key>[^{}\n]+)\}")


@dataclass(frozen=True)
class ReferenceOccurrence:
    key: str
    source_range: TextRange


@dataclass(frozen=True)
class ResolvedReference:
    occurrence: ReferenceOccurrence
    label: Label


def _line_window(rng: TextRange, line: int, text: str) -> tuple[int, int]:
    start = rng.start.column if line == rng.start.line else 0
    end = rng.end.column if line == rng.end.line else len(text)
    return max(0, start), min(len(text), end)


def find_references(lines: Sequence[str], visible_ranges: Iterable[TextRange]) -> list[ReferenceOccurrence]:
    """Collect \\ref{key} occurrences lying fully inside the visible ranges."""
    found: list[ReferenceOccurrence] = []
    for rng in merge_ranges(visible_ranges):
        first = max(0, rng.start.line)
        last = min(len(lines) - 1, rng.end.line)
        for line in range(first, last + 1):
            text = lines[line]
            if "\\ref{" not in text:
                continue
            start, end = _line_window(rng, line, text)
            for match in REF_PATTERN.finditer(text, start, end):
                found.append(
                    ReferenceOccurrence(
                        match.group("key"),
                        TextRange.on_line(line, match.start(), match.end()),
                    )
                )
    return found


def resolve_reference(occurrence: ReferenceOccurrence, cache: LabelCache) -> Optional[ResolvedReference]:
    label = cache.get(occurrence.key)
    if label is None:
        return None
    return ResolvedReference(occurrence, label)


def resolve_references(occurrences: Iterable[ReferenceOccurrence], cache: LabelCache) -> list[ResolvedReference]:
    """Pair occurrences with their labels; unknown keys are dropped."""
    resolved: list[ResolvedReference] = []
    for occurrence in occurrences:
        match = resolve_reference(occurrence, cache)
        if match is not None:
            resolved.append(match)
    return resolved
