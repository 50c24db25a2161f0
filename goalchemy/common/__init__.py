# goalchemy/common - settings shared by the puzzle core and its front ends
#
# Only configuration lives here; nothing in this package depends on a UI.

from goalchemy.common.config_store import JsonFileConfigStore

__all__ = ["JsonFileConfigStore"]
