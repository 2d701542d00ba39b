from __future__ import annotations

import os

# Headless Qt for CI; must be set before any QApplication exists.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from eqref.app import config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the settings file at a per-test location."""
    path = tmp_path / "eqref_config.json"
    monkeypatch.setattr(config, "GLOBAL_CONFIG", path)
    return path
