from __future__ import annotations

from eqref.app.tag_sync import (
    Edit,
    apply_edits,
    find_comment_marker,
    line_tag_edit,
    synchronize,
    synchronize_text,
)


def _sync_until_stable(lines: list[str], limit: int = 5) -> tuple[list[str], int]:
    for rounds in range(limit):
        result = synchronize(lines)
        if not result.edits:
            return lines, rounds
        lines = apply_edits(lines, result.edits)
    raise AssertionError(f"tag synchronization did not converge: {lines!r}")


def test_inserts_tag_before_comment_marker():
    result = synchronize(["x = y %\\label{a}"])
    assert result.edits == (Edit(0, 6, 6, "\\tag{1} "),)
    assert apply_edits(["x = y %\\label{a}"], result.edits) == ["x = y \\tag{1} %\\label{a}"]


def test_second_sync_is_idempotent():
    lines = ["%\\label{a}", "body", "%\\label{b}"]
    first = synchronize(lines)
    assert len(first.edits) == 2
    synced = apply_edits(lines, first.edits)
    assert synchronize(synced).edits == ()


def test_wrong_tag_is_replaced_in_place():
    line = "E = mc^2 \\tag{7} %\\label{a}"
    start, end, text = line_tag_edit(line, 1)
    assert line[start:end] == "\\tag{7}"
    assert text == "\\tag{1}"
    assert synchronize([line]).edits == (Edit(0, start, end, "\\tag{1}"),)


def test_correct_tag_produces_no_edit():
    assert line_tag_edit("a \\tag{3} %\\label{k}", 3) is None


def test_uncommented_label_is_counted_but_not_tagged():
    lines = ["\\label{plain}", "%\\label{tagged}"]
    result = synchronize(lines)
    assert result.cache.ordinals() == {"plain": 1, "tagged": 2}
    assert result.edits == (Edit(1, 0, 0, "\\tag{2} "),)


def test_uncommented_label_with_stale_tag_is_left_alone():
    result = synchronize(["\\tag{9} \\label{plain}"])
    assert result.edits == ()


def test_continuation_marker_takes_precedence():
    line = "\\label{a} \\\\ %c"
    result = synchronize([line])
    assert result.edits == (Edit(0, 10, 10, "\\tag{1} "),)
    assert apply_edits([line], result.edits) == ["\\label{a} \\tag{1} \\\\ %c"]


def test_continuation_after_comment_is_ignored():
    line = "a %\\label{a} \\\\"
    assert line_tag_edit(line, 1) == (2, 2, "\\tag{1} ")


def test_escaped_percent_is_not_a_comment():
    assert find_comment_marker("50\\% off") == -1
    assert find_comment_marker("a \\\\% note") == 4
    assert synchronize(["50\\% \\label{a}"]).edits == ()


def test_renumbering_after_insertion_converges():
    lines = [
        "%\\label{first}",
        "%\\label{second}",
    ]
    synced, _ = _sync_until_stable(lines)
    synced.insert(0, "%\\label{new}")
    final, rounds = _sync_until_stable(synced)
    assert rounds == 1
    assert final == [
        "\\tag{1} %\\label{new}",
        "\\tag{2} %\\label{first}",
        "\\tag{3} %\\label{second}",
    ]


def test_malformed_tag_converges():
    final, rounds = _sync_until_stable(["\\tag{ %\\label{a}"])
    assert rounds == 1
    assert synchronize(final).edits == ()


def test_end_to_end_document():
    result = synchronize_text("%\\label{one}\n\\ref{one}\n%\\label{two}")
    synced = apply_edits(["%\\label{one}", "\\ref{one}", "%\\label{two}"], result.edits)
    assert synced[0] == "\\tag{1} %\\label{one}"
    assert synced[2] == "\\tag{2} %\\label{two}"
    assert result.cache.ordinals() == {"one": 1, "two": 2}
