from __future__ import annotations

from eqref.app.decorations import plan_decorations
from eqref.app.positions import Position, TextRange, merge_ranges
from eqref.app.references import find_references, resolve_references
from eqref.app.scanner import scan_labels

DOC = ["%\\label{a}", "see \\ref{a} and \\ref{b}", "%\\label{b}", "\\ref{missing}"]


def _everything(lines):
    return [TextRange(Position(0, 0), Position(len(lines) - 1, len(lines[-1])))]


def _caret(line: int, column: int) -> TextRange:
    return TextRange(Position(line, column), Position(line, column))


FAR_AWAY = [_caret(0, 0)]


def test_resolves_with_prefix():
    lines = ["%\\label{a}", "later \\ref{a}"]
    decorations = plan_decorations(lines, _everything(lines), FAR_AWAY, scan_labels(lines), "Eq. ")
    assert [d.text for d in decorations] == ["Eq. 1"]
    assert decorations[0].source_range == TextRange.on_line(1, 6, 13)


def test_unresolved_reference_is_left_raw():
    decorations = plan_decorations(DOC, _everything(DOC), FAR_AWAY, scan_labels(DOC), "Equation ")
    assert [(d.key, d.text) for d in decorations] == [("a", "Equation 1"), ("b", "Equation 2")]


def test_caret_inside_reference_suppresses_it():
    cache = scan_labels(DOC)
    inside = [_caret(1, 7)]
    decorations = plan_decorations(DOC, _everything(DOC), inside, cache, "Eq. ")
    assert [d.key for d in decorations] == ["b"]

    moved_away = [_caret(3, 0)]
    decorations = plan_decorations(DOC, _everything(DOC), moved_away, cache, "Eq. ")
    assert [d.key for d in decorations] == ["a", "b"]


def test_caret_on_boundary_keeps_decoration():
    cache = scan_labels(DOC)
    for column in (4, 11):
        decorations = plan_decorations(DOC, _everything(DOC), [_caret(1, column)], cache, "Eq. ")
        assert [d.key for d in decorations] == ["a", "b"]


def test_selection_across_lines_suppresses_covered_references():
    cache = scan_labels(DOC)
    selection = [TextRange(Position(0, 2), Position(1, 5))]
    decorations = plan_decorations(DOC, _everything(DOC), selection, cache, "Eq. ")
    assert [d.key for d in decorations] == ["b"]


def test_only_visible_ranges_are_scanned():
    visible = [TextRange(Position(1, 12), Position(1, len(DOC[1])))]
    occurrences = find_references(DOC, visible)
    assert [o.key for o in occurrences] == ["b"]


def test_overlapping_visible_ranges_do_not_duplicate():
    visible = [TextRange(Position(0, 0), Position(1, 20)), TextRange(Position(1, 0), Position(3, 0))]
    assert merge_ranges(visible) == [TextRange(Position(0, 0), Position(3, 0))]
    occurrences = find_references(DOC, visible)
    assert [o.key for o in occurrences] == ["a", "b"]


def test_resolution_uses_given_snapshot():
    occurrences = find_references(DOC, _everything(DOC))
    stale = scan_labels(["%\\label{b}"])
    resolved = resolve_references(occurrences, stale)
    assert [(r.occurrence.key, r.label.ordinal) for r in resolved] == [("b", 1)]
