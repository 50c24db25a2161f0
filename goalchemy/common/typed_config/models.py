# goalchemy/common/typed_config/models.py
#
# Frozen settings records and the tolerant converters they are built with.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from goalchemy.core.constants import (
    AUTO_PLAY_DELAY,
    AUTO_PLAY_FIRST,
    AUTO_PLAY_POLICIES,
    DEFAULT_BOARD_SIZE,
    MAX_AUTO_PLAY_DELAY,
    MAX_BOARD_SIZE,
    MIN_BOARD_SIZE,
)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


# =============================================================================
# Helper Functions
# =============================================================================


def safe_int(value: Any, default: int) -> int:
    """int conversion. None, bool, float and failed conversions give ``default``.

    Note:
        bool is an int subclass but is rejected, so True does not silently become 1.
        float is rejected rather than truncated.
    """
    if value is None or isinstance(value, (bool, float)):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def safe_float(value: Any, default: float) -> float:
    """float conversion. None, bool and failed conversions give ``default``. NaN is rejected too."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return default if result != result else result


def safe_bool(value: Any, default: bool = False) -> bool:
    """bool conversion. Unrecognized strings ("fasle") give ``default`` instead of guessing."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in _TRUE_STRINGS:
            return True
        if lower in _FALSE_STRINGS:
            return False
    return default


def safe_str(value: Any, default: str) -> str:
    """Non-empty strings pass through; anything else gives ``default``."""
    if not isinstance(value, str) or not value:
        return default
    return value


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


# =============================================================================
# Dataclasses
# =============================================================================


@dataclass(frozen=True)
class PuzzleSettings:
    """Puzzle session settings (``puzzle`` section).

    Thread-safety: Immutable (frozen=True)

    Attributes:
        randomize_board: start every puzzle under a random rotation/reflection/color swap
        show_hints: expose the correct/incorrect hint labels of the current node
        show_coordinates: draw board coordinates (presentation only)
        auto_play_opponent: answer a player move with a recorded opponent reply
        auto_play_delay: seconds before the auto-played reply, within [0, 10]
        auto_play_policy: "first" or "random" among recorded replies
        board_size: board size used when a puzzle does not give one, within [2, 52]
    """

    randomize_board: bool = False
    show_hints: bool = False
    show_coordinates: bool = True
    auto_play_opponent: bool = True
    auto_play_delay: float = AUTO_PLAY_DELAY
    auto_play_policy: str = AUTO_PLAY_FIRST
    board_size: int = DEFAULT_BOARD_SIZE

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "PuzzleSettings":
        """Missing keys take defaults, bad values are converted or replaced by defaults."""
        policy = safe_str(d.get("auto_play_policy"), AUTO_PLAY_FIRST).lower()
        return cls(
            randomize_board=safe_bool(d.get("randomize_board"), default=False),
            show_hints=safe_bool(d.get("show_hints"), default=False),
            show_coordinates=safe_bool(d.get("show_coordinates"), default=True),
            auto_play_opponent=safe_bool(d.get("auto_play_opponent"), default=True),
            auto_play_delay=clamp(safe_float(d.get("auto_play_delay"), AUTO_PLAY_DELAY), 0.0, MAX_AUTO_PLAY_DELAY),
            auto_play_policy=policy if policy in AUTO_PLAY_POLICIES else AUTO_PLAY_FIRST,
            board_size=int(clamp(safe_int(d.get("board_size"), DEFAULT_BOARD_SIZE), MIN_BOARD_SIZE, MAX_BOARD_SIZE)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "randomize_board": self.randomize_board,
            "show_hints": self.show_hints,
            "show_coordinates": self.show_coordinates,
            "auto_play_opponent": self.auto_play_opponent,
            "auto_play_delay": self.auto_play_delay,
            "auto_play_policy": self.auto_play_policy,
            "board_size": self.board_size,
        }
