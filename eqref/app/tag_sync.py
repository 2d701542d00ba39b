"""Keep \\tag{N} annotations in step with label ordinals.

Every synchronization cycle produces one list of :class:`Edit` objects that a
host applies as a single transaction. Re-scanning the edited document always
yields an empty list, which is what stops the synchronizer's own writes from
re-triggering it forever.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from eqref.app.scanner import LabelCache, scan_labels, split_lines

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"\\tag\{[^{}\n]*\}")
COMMENT_MARKER = "%"
CONTINUATION_MARKER = "\\\\"


@dataclass(frozen=True)
class Edit:
    """Replace columns [start, end) of one line; start == end inserts."""

    line: int
    start: int
    end: int
    text: str


@dataclass(frozen=True)
class SyncResult:
    cache: LabelCache
    edits: tuple[Edit, ...]


def format_tag(ordinal: int) -> str:
    return f"\\tag{{{ordinal}}}"


def find_comment_marker(line: str) -> int:
    """Index of the first unescaped comment marker, or -1.

    ``\\%`` is a literal percent sign; ``\\\\%`` is a line break followed by a
    real comment.
    """
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if char == "\\":
            index += 2
            continue
        if char == COMMENT_MARKER:
            return index
        index += 1
    return -1


def line_tag_edit(line: str, ordinal: int) -> Optional[tuple[int, int, str]]:
    """Return the (start, end, text) change one label line needs, if any."""
    comment_at = find_comment_marker(line)
    if comment_at == -1:
        # Uncommented labels keep their ordinal but are never annotated
        return None
    expected = format_tag(ordinal)
    existing = TAG_PATTERN.search(line)
    if existing is not None:
        if existing.group(0) == expected:
            return None
        return existing.start(), existing.end(), expected
    continuation_at = line.find(CONTINUATION_MARKER)
    if continuation_at != -1 and continuation_at < comment_at:
        insert_at = continuation_at
    else:
        insert_at = comment_at
    return insert_at, insert_at, f"{expected} "


def compute_tag_edits(lines: Sequence[str], cache: LabelCache) -> list[Edit]:
    edits: list[Edit] = []
    for label in cache.labels:
        if label.line >= len(lines):
            continue
        change = line_tag_edit(lines[label.line], label.ordinal)
        if change is None:
            continue
        start, end, text = change
        edits.append(Edit(label.line, start, end, text))
    return edits


def synchronize(lines: Sequence[str]) -> SyncResult:
    """Scan the document once and compute every tag edit it needs."""
    cache = scan_labels(lines)
    edits = tuple(compute_tag_edits(lines, cache))
    logger.debug("Scanned %d labels, %d tag edits", len(cache.labels), len(edits))
    return SyncResult(cache, edits)


def synchronize_text(text: str) -> SyncResult:
    return synchronize(split_lines(text))


def apply_edits(lines: Sequence[str], edits: Sequence[Edit]) -> list[str]:
    """Apply an edit list to a copy of ``lines``.

    Edits on the same line are applied right to left so earlier columns stay
    valid.
    """
    result = list(lines)
    for edit in sorted(edits, key=lambda e: (e.line, e.start), reverse=True):
        if edit.line >= len(result):
            continue
        line = result[edit.line]
        result[edit.line] = line[: edit.start] + edit.text + line[edit.end :]
    return result
