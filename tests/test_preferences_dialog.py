from eqref.app import config
from eqref.app.config import ReferenceSettings
from eqref.app.ui.preferences_dialog import ReferencePreferencesDialog


def test_dialog_shows_current_settings(qtbot):
    dlg = ReferencePreferencesDialog(ReferenceSettings("Eq. ", 250, True))
    qtbot.addWidget(dlg)
    assert dlg.prefix_edit.text() == "Eq. "
    assert dlg.debounce_spin.value() == 250
    assert dlg.strict_checkbox.isChecked()


def test_accept_saves_settings(qtbot):
    dlg = ReferencePreferencesDialog()
    qtbot.addWidget(dlg)
    dlg.prefix_edit.setText("(")
    dlg.debounce_spin.setValue(10)
    dlg.accept()

    saved = config.load_reference_settings()
    assert saved.prefix == "("
    assert saved.sync_debounce_ms == config.MIN_SYNC_DEBOUNCE_MS
    assert saved.strict_duplicate_labels is False
