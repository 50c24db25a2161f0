# goalchemy/common/typed_config/settings.py
"""Reading and updating PuzzleSettings in a JsonFileConfigStore.

Updates MERGE into the stored section: unspecified fields keep their stored values and
unknown stored keys are preserved. Field names are checked, so a typo raises
UnknownFieldError instead of being written silently.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any

from goalchemy.common.config_store import JsonFileConfigStore
from goalchemy.common.typed_config.models import PuzzleSettings
from goalchemy.core.constants import SETTINGS_SECTION

_log = logging.getLogger(__name__)


class UnknownFieldError(AttributeError):
    """An update named a field PuzzleSettings does not have."""

    pass


def load_settings(store: JsonFileConfigStore) -> PuzzleSettings:
    return PuzzleSettings.from_dict(store.get(SETTINGS_SECTION) or {})


def update_settings(store: JsonFileConfigStore, **updates: Any) -> PuzzleSettings:
    """Validates, normalizes and saves the given fields; returns the resulting settings."""
    valid_fields = {f.name for f in fields(PuzzleSettings)}
    unknown = set(updates) - valid_fields
    if unknown:
        raise UnknownFieldError(f"PuzzleSettings has no field(s): {sorted(unknown)}")

    merged = store.get(SETTINGS_SECTION) or {}
    merged.update(updates)
    validated = PuzzleSettings.from_dict({k: v for k, v in merged.items() if k in valid_fields})

    persist = dict(merged)
    normalized = validated.to_dict()
    for key, input_val in updates.items():
        persist[key] = normalized[key]
        if input_val != normalized[key]:
            _log.warning("Settings value %s=%r was normalized to %r", key, input_val, normalized[key])
    store.put(SETTINGS_SECTION, **persist)
    return validated


def save_settings(store: JsonFileConfigStore, settings: PuzzleSettings) -> None:
    """Writes every field of ``settings``, keeping unknown keys already in the section."""
    merged = store.get(SETTINGS_SECTION) or {}
    merged.update(settings.to_dict())
    store.put(SETTINGS_SECTION, **merged)
