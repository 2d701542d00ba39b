from __future__ import annotations

import logging
from typing import Optional, Sequence

from PySide6.QtCore import QPoint, QRectF, Qt, QTimer, Signal
from PySide6.QtGui import (
    QColor,
    QFont,
    QFontMetricsF,
    QPainter,
    QSyntaxHighlighter,
    QTextCharFormat,
    QTextCursor,
    QTextDocument,
)
from PySide6.QtWidgets import QDialog, QTextEdit
from shiboken6 import Shiboken

from eqref.app.config import ReferenceSettings
from eqref.app.decorations import Decoration
from eqref.app.plugin import EquationReferencePlugin
from eqref.app.positions import Position, TextRange
from eqref.app.tag_sync import Edit
from eqref.app.ui.preferences_dialog import ReferencePreferencesDialog
from eqref.app.ui.text_positions import from_utf16, to_utf16
from eqref.app.updates import UpdateEvent, UpdateKind

logger = logging.getLogger(__name__)

DECORATION_COLOR = "#6cb4ff"


class ReferenceDecorationHighlighter(QSyntaxHighlighter):
    """Hides decorated \\ref{...} spans and widens them to the display text.

    Only character formats change; the document text is never touched. The
    editor paints the display text over the emptied span.
    """

    def __init__(self, parent) -> None:  # type: ignore[override]
        super().__init__(parent)
        self.hidden_format = QTextCharFormat()
        self.hidden_format.setForeground(QColor(0, 0, 0, 0))
        # block number -> [(start column, end column, raw text, display text)]
        self._spans: dict[int, list[tuple[int, int, str, str]]] = {}

    def set_decorations(self, decorations: Sequence[Decoration], lines: Sequence[str]) -> None:
        spans: dict[int, list[tuple[int, int, str, str]]] = {}
        for deco in decorations:
            rng = deco.source_range
            if rng.start.line != rng.end.line or rng.start.line >= len(lines):
                continue
            raw = lines[rng.start.line][rng.start.column : rng.end.column]
            spans.setdefault(rng.start.line, []).append((rng.start.column, rng.end.column, raw, deco.text))
        touched = set(self._spans) | set(spans)
        self._spans = spans
        document = self.document()
        if document is None:
            return
        for number in sorted(touched):
            block = document.findBlockByNumber(number)
            if block.isValid():
                self.rehighlightBlock(block)

    def _format_for(self, raw: str, display: str) -> QTextCharFormat:
        fmt = QTextCharFormat(self.hidden_format)
        metrics = QFontMetricsF(self.document().defaultFont())
        extra = metrics.horizontalAdvance(display) - metrics.horizontalAdvance(raw)
        fmt.setFontLetterSpacingType(QFont.SpacingType.AbsoluteSpacing)
        fmt.setFontLetterSpacing(extra / max(1, len(raw)))
        return fmt

    def highlightBlock(self, text: str) -> None:  # type: ignore[override]
        spans = self._spans.get(self.currentBlock().blockNumber())
        if not spans:
            return
        for start, end, raw, display in spans:
            # Stale span from before the latest edit; the next rebuild fixes it
            if text[start:end] != raw:
                continue
            start16 = to_utf16(text, start)
            self.setFormat(start16, to_utf16(text, end) - start16, self._format_for(raw, display))


class EquationEditor(QTextEdit):
    """Plain-text editor that numbers labeled equations and decorates references."""

    updated = Signal(object)  # UpdateEvent
    preferencesRequested = Signal()

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setAcceptRichText(False)
        self.setLineWrapMode(QTextEdit.LineWrapMode.WidgetWidth)
        self.setPlaceholderText("Write equations with %\\label{key} and cite them with \\ref{key}…")
        self.plugin: Optional[EquationReferencePlugin] = None
        self._decorations: tuple[Decoration, ...] = ()
        self._decoration_color = QColor(DECORATION_COLOR)
        self._format_refresh_pending = False
        self._editor_alive = True
        self.destroyed.connect(self._on_editor_destroyed)
        self.decoration_highlighter = ReferenceDecorationHighlighter(self.document())
        self.document().contentsChange.connect(self._on_contents_change)
        self.cursorPositionChanged.connect(self._on_selection_changed)
        self.selectionChanged.connect(self._on_selection_changed)
        self.verticalScrollBar().valueChanged.connect(self._on_viewport_changed)
        self.horizontalScrollBar().valueChanged.connect(self._on_viewport_changed)
        self.preferencesRequested.connect(self.open_reference_preferences)

    # --- Plugin lifecycle -------------------------------------------------
    def enable_equation_references(self, settings: Optional[ReferenceSettings] = None) -> EquationReferencePlugin:
        if self.plugin is None:
            self.plugin = EquationReferencePlugin(self, settings, parent=self)
        self.plugin.activate()
        return self.plugin

    def disable_equation_references(self) -> None:
        if self.plugin is not None:
            self.plugin.deactivate()

    def open_reference_preferences(self) -> None:
        if self.plugin is None:
            return
        dlg = ReferencePreferencesDialog(self.plugin.settings, self)
        if dlg.exec() == QDialog.Accepted:
            self.plugin.apply_settings(dlg.settings())

    # --- Document store ---------------------------------------------------
    def document_text(self) -> str:
        return self.toPlainText()

    def line_count(self) -> int:
        return self.document().blockCount()

    def line_text(self, index: int) -> str:
        block = self.document().findBlockByNumber(index)
        return block.text() if block.isValid() else ""

    def apply_edits(self, edits: Sequence[Edit]) -> None:
        """Apply all edits as one undo step and one change notification."""
        if not edits:
            return
        document = self.document()
        cursor = QTextCursor(document)
        cursor.beginEditBlock()
        try:
            # Right to left keeps the positions of pending edits valid
            for edit in sorted(edits, key=lambda e: (e.line, e.start), reverse=True):
                block = document.findBlockByNumber(edit.line)
                if not block.isValid():
                    continue
                text = block.text()
                cursor.setPosition(block.position() + to_utf16(text, edit.start))
                cursor.setPosition(block.position() + to_utf16(text, edit.end), QTextCursor.MoveMode.KeepAnchor)
                cursor.insertText(edit.text)
        finally:
            cursor.endEditBlock()

    def visible_ranges(self) -> list[TextRange]:
        document = self.document()
        viewport = self.viewport()
        if not self.isVisible() or viewport.height() <= 0:
            # Not laid out yet: treat the whole document as visible
            last = document.lastBlock()
            return [TextRange(Position(0, 0), Position(last.blockNumber(), len(last.text())))]
        first = self.cursorForPosition(QPoint(0, 0)).block()
        last = self.cursorForPosition(QPoint(max(0, viewport.width() - 1), max(0, viewport.height() - 1))).block()
        return [TextRange(Position(first.blockNumber(), 0), Position(last.blockNumber(), len(last.text())))]

    def selection_ranges(self) -> list[TextRange]:
        cursor = self.textCursor()
        return [TextRange(self._from_qt_position(cursor.selectionStart()), self._from_qt_position(cursor.selectionEnd()))]

    def set_decorations(self, decorations: Sequence[Decoration]) -> None:
        decorations = tuple(decorations)
        if decorations == self._decorations:
            return
        self._decorations = decorations
        # Format changes are deferred out of the document's own change signals
        if not self._format_refresh_pending:
            self._format_refresh_pending = True
            QTimer.singleShot(0, self._apply_decoration_formats)

    def decorations(self) -> tuple[Decoration, ...]:
        return self._decorations

    def _apply_decoration_formats(self) -> None:
        self._format_refresh_pending = False
        if not self._editor_alive or not Shiboken.isValid(self):
            return
        lines = self.toPlainText().split("\n")
        self.decoration_highlighter.set_decorations(self._decorations, lines)
        self.viewport().update()

    # --- Position mapping -------------------------------------------------
    def to_qt_position(self, position: Position) -> int:
        document = self.document()
        block = document.findBlockByNumber(position.line)
        if not block.isValid():
            return max(0, document.characterCount() - 1)
        return block.position() + to_utf16(block.text(), position.column)

    def _from_qt_position(self, position: int) -> Position:
        block = self.document().findBlock(position)
        if not block.isValid():
            block = self.document().lastBlock()
            return Position(block.blockNumber(), len(block.text()))
        return Position(block.blockNumber(), from_utf16(block.text(), position - block.position()))

    # --- Host notifications -----------------------------------------------
    def _emit_update(self, *kinds: UpdateKind) -> None:
        self.updated.emit(UpdateEvent.of(*kinds))

    def _on_contents_change(self, position: int, removed: int, added: int) -> None:
        if removed or added:
            self._emit_update(UpdateKind.DOCUMENT_CHANGED)

    def _on_selection_changed(self) -> None:
        self._emit_update(UpdateKind.SELECTION_CHANGED)

    def _on_viewport_changed(self, *_args) -> None:
        self._emit_update(UpdateKind.VIEWPORT_CHANGED)

    def _on_editor_destroyed(self) -> None:
        self._editor_alive = False

    def setDocument(self, document: QTextDocument) -> None:  # type: ignore[override]
        old_document = self.document()
        if old_document is not None:
            try:
                old_document.contentsChange.disconnect(self._on_contents_change)
            except (TypeError, RuntimeError):
                pass
        super().setDocument(document)
        self.decoration_highlighter.setDocument(document)
        document.contentsChange.connect(self._on_contents_change)
        self._emit_update(UpdateKind.DOCUMENT_CHANGED)

    def focusInEvent(self, event):  # type: ignore[override]
        super().focusInEvent(event)
        self._emit_update(UpdateKind.FOCUS_CHANGED)

    def focusOutEvent(self, event):  # type: ignore[override]
        super().focusOutEvent(event)
        self._emit_update(UpdateKind.FOCUS_CHANGED)

    def resizeEvent(self, event):  # type: ignore[override]
        super().resizeEvent(event)
        self._emit_update(UpdateKind.VIEWPORT_CHANGED)

    def contextMenuEvent(self, event):  # type: ignore[override]
        menu = self.createStandardContextMenu()
        if self.plugin is not None:
            menu.addSeparator()
            action = menu.addAction("Equation Reference Settings…")
            action.triggered.connect(self.preferencesRequested.emit)
        menu.exec(event.globalPos())
        menu.deleteLater()

    def closeEvent(self, event):  # type: ignore[override]
        self.disable_equation_references()
        super().closeEvent(event)

    def paintEvent(self, event):  # type: ignore[override]
        """Draw the display text of each decoration over its hidden span."""
        super().paintEvent(event)
        if not self._decorations:
            return
        painter: Optional[QPainter] = None
        try:
            viewport = self.viewport()
            if not self._editor_alive or not Shiboken.isValid(viewport):
                return
            painter = QPainter(viewport)
            painter.setFont(self.document().defaultFont())
            painter.setPen(self._decoration_color)
            metrics = QFontMetricsF(self.document().defaultFont())
            height = viewport.height()
            for deco in self._decorations:
                cursor = QTextCursor(self.document())
                cursor.setPosition(self.to_qt_position(deco.source_range.start))
                rect = self.cursorRect(cursor)
                if rect.bottom() < 0 or rect.top() > height:
                    continue
                target = QRectF(rect.left(), rect.top(), metrics.horizontalAdvance(deco.text) + 1, rect.height())
                painter.drawText(target, Qt.AlignLeft | Qt.AlignVCenter, deco.text)
        except RuntimeError as exc:
            logger.warning("Skipping equation reference overlay: %s", exc)
        finally:
            if painter is not None and painter.isActive():
                painter.end()
