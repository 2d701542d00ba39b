from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Sequence

# Keys exclude braces, comment markers and backslashes so tag insertion
# never lands inside a key.
_KEY = r"(?P<key>[^{}%\\\n]+)"

# Live synchronization: any \label{key}, commented or not.
LABEL_PATTERN = re.compile(r"\\label\{" + _KEY + r"\}")
# Rendered output: only labels written behind a comment marker.
COMMENT_LABEL_PATTERN = re.compile(r"%\s*\\label\{" + _KEY + r"\}")


@dataclass(frozen=True)
class Label:
    key: str
    line: int
    ordinal: int


class LabelCache:
    """Read-only snapshot of one scan: ordered labels plus a key lookup.

    When a key is declared more than once the lookup keeps the last
    occurrence; the ordered sequence keeps all of them.
    """

    __slots__ = ("_labels", "_by_key")

    def __init__(self, labels: Iterable[Label] = ()) -> None:
        ordered = tuple(labels)
        by_key: dict[str, Label] = {}
        for label in ordered:
            by_key[label.key] = label
        self._labels = ordered
        self._by_key: Mapping[str, Label] = MappingProxyType(by_key)

    @property
    def labels(self) -> tuple[Label, ...]:
        return self._labels

    @property
    def by_key(self) -> Mapping[str, Label]:
        return self._by_key

    def get(self, key: str) -> Optional[Label]:
        return self._by_key.get(key)

    def ordinal_for(self, key: str) -> Optional[int]:
        label = self._by_key.get(key)
        return label.ordinal if label else None

    def ordinals(self) -> dict[str, int]:
        return {key: label.ordinal for key, label in self._by_key.items()}

    def duplicates(self) -> dict[str, list[int]]:
        """Return keys declared more than once mapped to their source lines."""
        lines: dict[str, list[int]] = {}
        for label in self._labels:
            lines.setdefault(label.key, []).append(label.line)
        return {key: found for key, found in lines.items() if len(found) > 1}

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_key)

    def __len__(self) -> int:
        return len(self._by_key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LabelCache):
            return NotImplemented
        return self._labels == other._labels

    def __hash__(self) -> int:
        return hash(self._labels)

    def __repr__(self) -> str:
        return f"LabelCache({self.ordinals()!r})"


EMPTY_CACHE = LabelCache()


def split_lines(text: str) -> list[str]:
    """Split document text the way line-indexed hosts number their lines."""
    return text.split("\n")


def _valid_key(key: str) -> bool:
    return bool(key.strip())


def scan_labels(lines: Sequence[str]) -> LabelCache:
    """Number \\label{key} declarations top to bottom, first valid key per line."""
    labels: list[Label] = []
    ordinal = 0
    for index, line in enumerate(lines):
        # Fast path: most lines carry no label at all
        if "\\label{" not in line:
            continue
        key = None
        for match in LABEL_PATTERN.finditer(line):
            if _valid_key(match.group("key")):
                key = match.group("key")
                break
        if key is None:
            continue
        ordinal += 1
        labels.append(Label(key, index, ordinal))
    return LabelCache(labels)


def scan_comment_labels(text: str) -> LabelCache:
    """Number only comment-prefixed labels, every occurrence in the text.

    Used by the rendered-output pass. Unlike :func:`scan_labels` it skips
    uncommented labels, so ordinals can differ between the two views.
    """
    labels: list[Label] = []
    ordinal = 0
    line = 0
    last = 0
    for match in COMMENT_LABEL_PATTERN.finditer(text):
        line += text.count("\n", last, match.start())
        last = match.start()
        key = match.group("key")
        if not _valid_key(key):
            continue
        ordinal += 1
        labels.append(Label(key, line, ordinal))
    return LabelCache(labels)
