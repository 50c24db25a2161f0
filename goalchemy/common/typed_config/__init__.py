# goalchemy/common/typed_config - typed access to the settings store

from goalchemy.common.typed_config.models import (
    PuzzleSettings,
    clamp,
    safe_bool,
    safe_float,
    safe_int,
    safe_str,
)
from goalchemy.common.typed_config.settings import (
    UnknownFieldError,
    load_settings,
    save_settings,
    update_settings,
)

__all__ = [
    "PuzzleSettings",
    "UnknownFieldError",
    "load_settings",
    "save_settings",
    "update_settings",
    "safe_int",
    "safe_float",
    "safe_bool",
    "safe_str",
    "clamp",
]
