from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

GLOBAL_CONFIG = Path.home() / ".eqref_config.json"

DEFAULT_PREFIX = "Equation "
DEFAULT_SYNC_DEBOUNCE_MS = 400
MIN_SYNC_DEBOUNCE_MS = 50
MAX_SYNC_DEBOUNCE_MS = 5000


@dataclass
class ReferenceSettings:
    """Plugin-wide settings, loaded at activation and saved at deactivation."""

    prefix: str = DEFAULT_PREFIX
    sync_debounce_ms: int = DEFAULT_SYNC_DEBOUNCE_MS
    strict_duplicate_labels: bool = False


def _read_global_config() -> dict:
    """Return the parsed global config, or an empty dict on error/missing."""
    if not GLOBAL_CONFIG.exists():
        return {}
    try:
        payload = json.loads(GLOBAL_CONFIG.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _update_global_config(updates: dict) -> None:
    """Merge updates into global config file."""
    existing = _read_global_config()
    existing.update(updates)
    try:
        GLOBAL_CONFIG.write_text(json.dumps(existing, indent=2), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not save settings to %s: %s", GLOBAL_CONFIG, exc)


def _clamp_debounce(value) -> int:
    try:
        ms = int(value)
    except (TypeError, ValueError):
        return DEFAULT_SYNC_DEBOUNCE_MS
    return max(MIN_SYNC_DEBOUNCE_MS, min(MAX_SYNC_DEBOUNCE_MS, ms))


def load_reference_prefix() -> str:
    """Load the text shown before a reference's ordinal (default: 'Equation ')."""
    payload = _read_global_config()
    prefix = payload.get("reference_prefix")
    return prefix if isinstance(prefix, str) else DEFAULT_PREFIX


def save_reference_prefix(prefix: str) -> None:
    _update_global_config({"reference_prefix": prefix if isinstance(prefix, str) else DEFAULT_PREFIX})


def load_sync_debounce_ms() -> int:
    """Load the tag synchronization quiescence window in milliseconds (default: 400)."""
    payload = _read_global_config()
    return _clamp_debounce(payload.get("sync_debounce_ms", DEFAULT_SYNC_DEBOUNCE_MS))


def save_sync_debounce_ms(ms: int) -> None:
    _update_global_config({"sync_debounce_ms": _clamp_debounce(ms)})


def load_strict_duplicate_labels() -> bool:
    """Return whether duplicate label keys are reported (default: False)."""
    payload = _read_global_config()
    val = payload.get("strict_duplicate_labels")
    if isinstance(val, bool):
        return val
    return False


def save_strict_duplicate_labels(enabled: bool) -> None:
    _update_global_config({"strict_duplicate_labels": bool(enabled)})


def load_reference_settings() -> ReferenceSettings:
    return ReferenceSettings(
        prefix=load_reference_prefix(),
        sync_debounce_ms=load_sync_debounce_ms(),
        strict_duplicate_labels=load_strict_duplicate_labels(),
    )


def save_reference_settings(settings: ReferenceSettings) -> None:
    """Persist all settings in a single write."""
    _update_global_config(
        {
            "reference_prefix": settings.prefix,
            "sync_debounce_ms": _clamp_debounce(settings.sync_debounce_ms),
            "strict_duplicate_labels": bool(settings.strict_duplicate_labels),
        }
    )
