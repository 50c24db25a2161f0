"""
Go Alchemy exception hierarchy.

Provides a base exception class with user-facing messages and debug context,
plus specialized subclasses for the puzzle core's error domains.

Propagation:
- InvalidTransformationError, InconsistentTreeError: programmer/data-integrity bugs, fail fast.
- NodeNotFoundError: stale id crossing tree values, recoverable (operation aborts, state unchanged).
- IllegalMoveError: only raised by Board.play(); user-facing paths return False instead.
- MalformedSgfError: absorbed by the session into a degenerate empty-board puzzle.
- AssetLoadError: re-raised to the caller, session stays in the loading state.
"""

from typing import Any, Dict, Optional


class GoAlchemyError(Exception):
    """Base exception for Go Alchemy errors.

    Attributes:
        user_message: Safe, user-facing error message.
        context: Dictionary of debug information.
    """

    def __init__(
        self,
        message: str,
        *,
        user_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.user_message = user_message or message
        self.context = context or {}


class InvalidTransformationError(GoAlchemyError, ValueError):
    """Rotation or reflection value outside the supported set."""

    pass


class NodeNotFoundError(GoAlchemyError, LookupError):
    """A node id does not resolve in the given game tree value."""

    def __init__(self, node_id: Any, **kwargs: Any):
        super().__init__(f"Node {node_id!r} not found in game tree", **kwargs)
        self.node_id = node_id


class IllegalMoveError(GoAlchemyError):
    """The rules engine rejected a move (occupied point, suicide, ko, off board)."""

    pass


class InconsistentTreeError(GoAlchemyError):
    """A move stored in the game tree could not be replayed on the board."""

    pass


class MalformedSgfError(GoAlchemyError):
    """SGF load/parse errors, or a tree without a usable structure."""

    pass


class AssetLoadError(GoAlchemyError):
    """Problem file could not be located or read."""

    pass
