from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping


class UpdateKind(Enum):
    DOCUMENT_CHANGED = "document"
    VIEWPORT_CHANGED = "viewport"
    SELECTION_CHANGED = "selection"
    FOCUS_CHANGED = "focus"


@dataclass(frozen=True)
class UpdateEvent:
    """One host notification; may carry several kinds at once."""

    kinds: frozenset = field(default_factory=frozenset)

    @classmethod
    def of(cls, *kinds: UpdateKind) -> "UpdateEvent":
        return cls(frozenset(kinds))

    def has(self, kind: UpdateKind) -> bool:
        return kind in self.kinds

    def __bool__(self) -> bool:
        return bool(self.kinds)


REBUILD_DECORATIONS = "rebuild_decorations"
SCHEDULE_SYNC = "schedule_sync"

# Order within a tuple is the order handlers run in.
DISPATCH_TABLE: Mapping[UpdateKind, tuple[str, ...]] = {
    UpdateKind.DOCUMENT_CHANGED: (REBUILD_DECORATIONS, SCHEDULE_SYNC),
    UpdateKind.VIEWPORT_CHANGED: (REBUILD_DECORATIONS,),
    UpdateKind.SELECTION_CHANGED: (REBUILD_DECORATIONS,),
    UpdateKind.FOCUS_CHANGED: (REBUILD_DECORATIONS,),
}


def handlers_for(event: UpdateEvent, table: Mapping[UpdateKind, tuple[str, ...]] = DISPATCH_TABLE) -> list[str]:
    """Return the handler names an event triggers, each at most once."""
    names: list[str] = []
    for kind in UpdateKind:
        if kind not in event.kinds:
            continue
        for name in table.get(kind, ()):
            if name not in names:
                names.append(name)
    return names


def dispatch(event: UpdateEvent, handlers: Mapping[str, Callable[[], None]]) -> list[str]:
    """Run the handlers an event maps to and return their names."""
    names = handlers_for(event)
    for name in names:
        handler = handlers.get(name)
        if handler is not None:
            handler()
    return names
