from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from eqref.app.positions import TextRange
from eqref.app.references import ResolvedReference, find_references, resolve_references
from eqref.app.scanner import LabelCache


@dataclass(frozen=True)
class Decoration:
    """Presentation-only replacement of a reference's source span."""

    source_range: TextRange
    text: str
    key: str
    ordinal: int


def display_text(prefix: str, ordinal: int) -> str:
    return f"{prefix}{ordinal}"


def is_under_selection(source_range: TextRange, selections: Iterable[TextRange]) -> bool:
    return any(source_range.overlaps(selection) for selection in selections)


def decorate(
    resolved: Iterable[ResolvedReference],
    selections: Sequence[TextRange],
    prefix: str,
) -> tuple[Decoration, ...]:
    decorations: list[Decoration] = []
    for ref in resolved:
        span = ref.occurrence.source_range
        if is_under_selection(span, selections):
            # Leave the raw source editable while the cursor is on it
            continue
        decorations.append(
            Decoration(span, display_text(prefix, ref.label.ordinal), ref.occurrence.key, ref.label.ordinal)
        )
    return tuple(sorted(decorations, key=lambda d: d.source_range.start))


def plan_decorations(
    lines: Sequence[str],
    visible_ranges: Iterable[TextRange],
    selections: Sequence[TextRange],
    cache: LabelCache,
    prefix: str,
) -> tuple[Decoration, ...]:
    """Rebuild the full decoration set for the visible part of the document."""
    occurrences = find_references(lines, visible_ranges)
    return decorate(resolve_references(occurrences, cache), list(selections), prefix)
