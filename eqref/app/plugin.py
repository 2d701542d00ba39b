"""Equation numbering for a live document surface.

The plugin talks to its host through a *document store*, any object offering:

- ``updated``: a Qt signal carrying an :class:`~eqref.app.updates.UpdateEvent`
- ``document_text()``, ``line_count()`` and ``line_text(index)``
- ``apply_edits(edits)``: apply a list of tag edits as one transaction
- ``visible_ranges()`` and ``selection_ranges()``: lists of ``TextRange``
- ``set_decorations(decorations)``

:class:`~eqref.app.ui.equation_editor.EquationEditor` is the Qt implementation.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from PySide6.QtCore import QObject, Signal

from eqref.app import config
from eqref.app.config import ReferenceSettings
from eqref.app.decorations import Decoration, plan_decorations
from eqref.app.scanner import EMPTY_CACHE, LabelCache, split_lines
from eqref.app.scheduler import ChangeScheduler
from eqref.app.tag_sync import synchronize
from eqref.app.updates import REBUILD_DECORATIONS, SCHEDULE_SYNC, UpdateEvent, dispatch

logger = logging.getLogger(__name__)


def _debug_enabled(var_name: str) -> bool:
    """Check if a debug flag is enabled."""
    return os.getenv(var_name, "0") not in ("0", "false", "False", "", None)


class EquationReferencePlugin(QObject):
    """Owns the settings and label cache for one document store."""

    labelsChanged = Signal(object)  # LabelCache
    decorationsChanged = Signal(object)  # tuple[Decoration, ...]
    duplicateLabelsFound = Signal(dict)  # key -> source lines

    def __init__(self, store, settings: Optional[ReferenceSettings] = None, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._store = store
        self._settings = settings
        self._owns_settings = settings is None
        self._cache: LabelCache = EMPTY_CACHE
        self._decorations: tuple[Decoration, ...] = ()
        self._active = False
        self._debug_sync = _debug_enabled("EQREF_DEBUG_SYNC")
        self.scheduler = ChangeScheduler(self.synchronize, parent=self)
        self._handlers = {
            REBUILD_DECORATIONS: self.refresh_decorations,
            SCHEDULE_SYNC: self.scheduler.trigger,
        }

    # --- Lifecycle ------------------------------------------------------
    def activate(self) -> None:
        if self._active:
            return
        if self._settings is None:
            self._settings = config.load_reference_settings()
        self.scheduler.set_interval(self._settings.sync_debounce_ms)
        self._cache = EMPTY_CACHE
        self._store.updated.connect(self.handle_update)
        self._active = True
        self.refresh_decorations()
        self.scheduler.trigger()

    def deactivate(self) -> None:
        if not self._active:
            return
        self.scheduler.cancel()
        try:
            self._store.updated.disconnect(self.handle_update)
        except (TypeError, RuntimeError):
            pass
        self._active = False
        if self._owns_settings and self._settings is not None:
            config.save_reference_settings(self._settings)
        self._decorations = ()
        self._store.set_decorations(())
        self._cache = EMPTY_CACHE

    def is_active(self) -> bool:
        return self._active

    # --- State ----------------------------------------------------------
    @property
    def settings(self) -> ReferenceSettings:
        if self._settings is None:
            self._settings = config.load_reference_settings()
        return self._settings

    @property
    def labels(self) -> LabelCache:
        return self._cache

    @property
    def decorations(self) -> tuple[Decoration, ...]:
        return self._decorations

    def set_prefix(self, prefix: str) -> None:
        self.settings.prefix = prefix
        config.save_reference_prefix(prefix)
        if self._active:
            self.refresh_decorations()

    def apply_settings(self, settings: ReferenceSettings) -> None:
        """Adopt edited settings (e.g. from the preferences dialog)."""
        self._settings = settings
        self.scheduler.set_interval(settings.sync_debounce_ms)
        if self._active:
            self.refresh_decorations()

    # --- Update handling --------------------------------------------------
    def handle_update(self, event: UpdateEvent) -> None:
        if not self._active or not event:
            return
        dispatch(event, self._handlers)

    def synchronize(self) -> None:
        """Run one scan + tag sync cycle against the current document."""
        if not self._active:
            return
        result = synchronize(split_lines(self._store.document_text()))
        if result.edits:
            if self._debug_sync:
                logger.debug("Applying %d tag edits: %s", len(result.edits), result.edits)
            self._store.apply_edits(result.edits)
        previous = self._cache
        self._cache = result.cache
        if self.settings.strict_duplicate_labels:
            duplicates = result.cache.duplicates()
            if duplicates:
                logger.warning("Duplicate equation labels: %s", ", ".join(sorted(duplicates)))
                self.duplicateLabelsFound.emit(duplicates)
        if result.cache != previous:
            if self._debug_sync:
                logger.debug("Label cache replaced: %r", result.cache)
            self.labelsChanged.emit(result.cache)
        self.refresh_decorations()

    def refresh_decorations(self) -> None:
        if not self._active:
            return
        lines = split_lines(self._store.document_text())
        decorations = plan_decorations(
            lines,
            self._store.visible_ranges(),
            self._store.selection_ranges(),
            self._cache,
            self.settings.prefix,
        )
        self._store.set_decorations(decorations)
        if decorations != self._decorations:
            self._decorations = decorations
            self.decorationsChanged.emit(decorations)
