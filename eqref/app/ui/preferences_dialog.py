from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QSpinBox,
    QVBoxLayout,
)

from eqref.app import config
from eqref.app.config import ReferenceSettings


class ReferencePreferencesDialog(QDialog):
    def __init__(self, settings: Optional[ReferenceSettings] = None, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Equation References")
        self.setModal(True)
        self.resize(360, 180)
        current = settings or config.load_reference_settings()

        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 10, 10, 10)
        layout.setSpacing(8)

        layout.addWidget(QLabel("<b>Prefix</b>"))
        self.prefix_edit = QLineEdit()
        self.prefix_edit.setPlaceholderText("Prefix")
        self.prefix_edit.setToolTip("The prefix used for references, e.g. 'Equation ' or 'Eq. '.")
        self.prefix_edit.setText(current.prefix)
        layout.addWidget(self.prefix_edit)

        row_debounce = QHBoxLayout()
        row_debounce.addWidget(QLabel("Tag update delay (ms):"))
        self.debounce_spin = QSpinBox()
        self.debounce_spin.setRange(config.MIN_SYNC_DEBOUNCE_MS, config.MAX_SYNC_DEBOUNCE_MS)
        self.debounce_spin.setSingleStep(50)
        self.debounce_spin.setValue(int(current.sync_debounce_ms))
        row_debounce.addWidget(self.debounce_spin, 1)
        layout.addLayout(row_debounce)

        self.strict_checkbox = QCheckBox("Warn about duplicate labels")
        self.strict_checkbox.setToolTip(
            "Report labels declared more than once.\nReferences always use the last declaration."
        )
        self.strict_checkbox.setChecked(current.strict_duplicate_labels)
        layout.addWidget(self.strict_checkbox)
        layout.addStretch(1)

        btn_box = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        btn_box.accepted.connect(self.accept)
        btn_box.rejected.connect(self.reject)
        layout.addWidget(btn_box, 0, Qt.AlignRight)

    def settings(self) -> ReferenceSettings:
        return ReferenceSettings(
            prefix=self.prefix_edit.text(),
            sync_debounce_ms=self.debounce_spin.value(),
            strict_duplicate_labels=self.strict_checkbox.isChecked(),
        )

    def accept(self):
        """Save preferences when OK is clicked."""
        config.save_reference_settings(self.settings())
        super().accept()
